"""Auth Module - accounts, sessions and tokens."""
from notevault.modules.auth.models import User, UserSession

__all__ = ["User", "UserSession"]
