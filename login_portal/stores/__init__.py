from login_portal.stores.base import CredentialStore, ResetTokenRecord, SessionRecord, TokenStore, UserRecord
from login_portal.stores.memory import MemoryCredentialStore, MemoryTokenStore
from login_portal.stores.sql import SqlCredentialStore, SqlTokenStore

__all__ = [
    "CredentialStore",
    "TokenStore",
    "UserRecord",
    "SessionRecord",
    "ResetTokenRecord",
    "MemoryCredentialStore",
    "MemoryTokenStore",
    "SqlCredentialStore",
    "SqlTokenStore",
]
