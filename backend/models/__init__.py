from models.profile import Profile
from models.user_memory import UserMemory
from models.semantic_memory import SemanticMemory
from models.folder import Folder
from models.chat import Chat
from models.message import Message


__all__ = [
    "Profile",
    "UserMemory",
    "SemanticMemory",
    "Folder",
    "Chat",
    "Message",
]
