# supabase_client.py: Supabase SDK client used for auth identity lookups

from supabase import create_client, Client
from config import SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY

# Global Supabase client instance
_supabase_admin: Client = None


def get_supabase_admin() -> Client:
    """
    Get Supabase client with service role key (admin privileges).
    Used server-side to resolve access tokens into users.
    """
    global _supabase_admin

    if _supabase_admin is None:
        if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment variables")

        _supabase_admin = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)

    return _supabase_admin


def get_user_from_token(access_token: str):
    """Get user information for an access token (blocking SDK call)."""
    supabase = get_supabase_admin()
    return supabase.auth.get_user(access_token)
