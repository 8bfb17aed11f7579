from .schema import SESSION_SCHEMA, SessionRecord, Status
from .local import JsonFileStore, KeyValueStore, MemoryStore, device_id
from .session_store import SessionStore, played_key, session_key

__all__ = [
    "SESSION_SCHEMA",
    "SessionRecord",
    "Status",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "device_id",
    "SessionStore",
    "played_key",
    "session_key",
]
