"""Per-user conversation memory"""
from .session_store import SessionStore, UserSession, ChatMessage, MAX_IDENTIFIED_SLUGS

__all__ = ["SessionStore", "UserSession", "ChatMessage", "MAX_IDENTIFIED_SLUGS"]
