"""
Key-value storage port and its adapters.

Everything the session engine persists goes through ``KeyValueStore`` (get/set/remove of
strings). Values are JSON; read_json() degrades unreadable data to "absent" and
write_json() logs storage failures instead of raising, so a broken backend never
blocks a running session.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional, Protocol

from supabase import Client, create_client

from aceprep import config

logger = logging.getLogger(__name__)

# Keys
EXAM_START_TIME = "exam_start_time"
EXAM_SESSION_IDS = "exam_session_ids"
EXAM_SHUFFLED_OPTIONS = "exam_shuffled_options"
EXAM_ANSWERS = "exam_answers"
EXAM_FLAGS = "exam_flags"
EXAM_HISTORY = "exam_history"

EXAM_KEYS = (EXAM_START_TIME, EXAM_SESSION_IDS, EXAM_SHUFFLED_OPTIONS, EXAM_ANSWERS, EXAM_FLAGS)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class SessionStateStore:
    """Adapter over any mutable mapping, e.g. Streamlit's st.session_state. Keys are prefixed."""

    def __init__(self, state: MutableMapping, prefix: str = "aceprep:"):
        self.state = state
        self.prefix = prefix

    def get(self, key: str) -> Optional[str]:
        value = self.state.get(self.prefix + key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self.state[self.prefix + key] = value

    def remove(self, key: str) -> None:
        full = self.prefix + key
        if full in self.state:
            del self.state[full]


class JsonFileStore:
    """All keys in one JSON object on disk. A missing or corrupt file reads as empty."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring state file {self.path}: expected an object")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class SupabaseStore:
    """
    Supabase table used as a key-value store.

    Expected table: ``kv_store(key text primary key, value text not null)``.
    Read errors are logged and reported as absent; write errors propagate to write_json().
    """

    def __init__(self, client: Client, table: str = config.SUPABASE_TABLE):
        self.client = client
        self.table = table

    def get(self, key: str) -> Optional[str]:
        try:
            response = self.client.table(self.table).select("value").eq("key", key).limit(1).execute()
        except Exception as e:
            logger.error(f"Error reading {key!r} from {self.table}: {e}")
            return None
        rows = response.data or []
        return rows[0].get("value") if rows else None

    def set(self, key: str, value: str) -> None:
        self.client.table(self.table).upsert({"key": key, "value": value}, on_conflict="key").execute()

    def remove(self, key: str) -> None:
        self.client.table(self.table).delete().eq("key", key).execute()


def create_supabase_client() -> Client:
    if not config.SUPABASE_URL or not config.SUPABASE_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(config.SUPABASE_URL, config.SUPABASE_KEY)


def open_store(backend: Optional[str] = None, session_state: Optional[MutableMapping] = None) -> KeyValueStore:
    """
    Build the configured store: "file" (default), "memory", "session" or "supabase".

    The "session" backend wraps ``session_state`` (st.session_state in the app) and
    keeps the exam only for the lifetime of the browser session.
    """
    backend = (backend or config.STORAGE_BACKEND).lower()
    if backend == "memory":
        return MemoryStore()
    if backend == "session":
        if session_state is None:
            raise ValueError("The session storage backend needs a session_state mapping")
        return SessionStateStore(session_state)
    if backend == "supabase":
        return SupabaseStore(create_supabase_client())
    if backend != "file":
        logger.warning(f"Unknown storage backend {backend!r}, using file storage")
    return JsonFileStore(config.STATE_FILE)


# ============= JSON helpers =============

def read_json(store: KeyValueStore, key: str, default: Any = None) -> Any:
    """Decoded value for key, or default when absent or unreadable."""
    raw = store.get(key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Discarding corrupt stored value for {key!r}: {e}")
        return default


def write_json(store: KeyValueStore, key: str, value: Any) -> bool:
    """Encode and store value. Storage failures are logged, not raised."""
    try:
        store.set(key, json.dumps(value))
        return True
    except Exception as e:
        logger.warning(f"Could not persist {key!r}: {e}")
        return False


def remove_keys(store: KeyValueStore, *keys: str) -> None:
    for key in keys:
        try:
            store.remove(key)
        except Exception as e:
            logger.warning(f"Could not remove {key!r}: {e}")
