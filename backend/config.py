import os
from dotenv import load_dotenv

load_dotenv()


def _float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def _int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


# --- Runtime ---
ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
IS_DEVELOPMENT = ENVIRONMENT.lower() == "development"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# --- API Keys (comma-separated for rotation) ---
OPENAI_API_KEYS = [k.strip() for k in os.getenv("OPENAI_API_KEYS", "").split(",") if k.strip()]
GROQ_API_KEYS = [k.strip() for k in os.getenv("GROQ_API_KEYS", "").split(",") if k.strip()]
OPENROUTER_API_KEYS = [k.strip() for k in os.getenv("OPENROUTER_API_KEYS", "").split(",") if k.strip()]

# --- Models ---
CHAT_PROVIDER = os.getenv("CHAT_PROVIDER", "openai")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
EXTRACTION_MODEL = os.getenv("EXTRACTION_MODEL", "gpt-4o-mini")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIMENSIONS = _int("EMBEDDING_DIMENSIONS", 1536)
LLM_TIMEOUT_SECONDS = _float("LLM_TIMEOUT_SECONDS", 30.0)

# --- Supabase Configuration ---
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")
SUPABASE_JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")
JWT_ALGORITHM = "HS256"
STORE_TIMEOUT_SECONDS = _float("STORE_TIMEOUT_SECONDS", 10.0)

# --- Database ---
# "supabase" talks to PostgREST; "sql" uses SQLAlchemy against DATABASE_URL (local dev)
DATA_BACKEND = os.getenv("DATA_BACKEND", "supabase").lower()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/chat.db")

# Fix for common SQLAlchemy issues with postgres:// vs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# --- Web search ---
SEARCH_TIMEOUT_SECONDS = _float("SEARCH_TIMEOUT_SECONDS", 10.0)
PAGE_FETCH_MAX_BYTES = _int("PAGE_FETCH_MAX_BYTES", 1024 * 1024)

# --- Memory ---
MEMORY_MATCH_THRESHOLD = _float("MEMORY_MATCH_THRESHOLD", 0.7)
MEMORY_CONTEXT_LIMIT = _int("MEMORY_CONTEXT_LIMIT", 3)
SEMANTIC_MEMORY_MAX_ENTRIES = _int("SEMANTIC_MEMORY_MAX_ENTRIES", 500)
SEMANTIC_DUPLICATE_THRESHOLD = _float("SEMANTIC_DUPLICATE_THRESHOLD", 0.95)
