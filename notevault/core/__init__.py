from notevault.core.config import settings
from notevault.core.database import get_db
from notevault.core.security import create_access_token, pwd_context, verify_token

__all__ = ["settings", "get_db", "pwd_context", "create_access_token", "verify_token"]
