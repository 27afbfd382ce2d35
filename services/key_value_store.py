"""
Key-Value Store

Scalar storage for the saved tournament. SqlKeyValueStore keeps the values
in the key_values table; MemoryKeyValueStore keeps them in a dict and is
used by the command-line simulation and the tests.

Writes made inside transaction() are applied together or not at all.
"""

from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from models.base import SessionLocal, get_session
from models.key_value import KeyValueEntry, ValueType


def _to_text(value, value_type: ValueType) -> str:
    if value_type == ValueType.BOOL:
        return "1" if value else "0"
    return str(value)


def _from_text(text: str, value_type: ValueType):
    if value_type == ValueType.INT:
        return int(text)
    if value_type == ValueType.BOOL:
        return text == "1"
    return text


class MemoryKeyValueStore:
    """In-memory key-value store."""

    def __init__(self):
        self._values: dict[str, tuple[ValueType, str]] = {}

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Restore the previous values if the block raises."""
        saved = dict(self._values)
        try:
            yield
        except Exception:
            self._values = saved
            raise

    def _set(self, key: str, value, value_type: ValueType) -> None:
        self._values[key] = (value_type, _to_text(value, value_type))

    def _get(self, key: str, default, value_type: ValueType):
        entry = self._values.get(key)
        if entry is None or entry[0] != value_type:
            return default
        return _from_text(entry[1], value_type)

    def set_string(self, key: str, value: str) -> None:
        self._set(key, value, ValueType.STRING)

    def set_int(self, key: str, value: int) -> None:
        self._set(key, value, ValueType.INT)

    def set_bool(self, key: str, value: bool) -> None:
        self._set(key, value, ValueType.BOOL)

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._get(key, default, ValueType.STRING)

    def get_int(self, key: str, default: int = 0) -> int:
        return self._get(key, default, ValueType.INT)

    def get_bool(self, key: str, default: bool = False) -> bool:
        return self._get(key, default, ValueType.BOOL)

    def has_key(self, key: str) -> bool:
        return key in self._values

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix. Returns the number deleted."""
        keys = [k for k in self._values if k.startswith(prefix)]
        for k in keys:
            del self._values[k]
        return len(keys)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._values if k.startswith(prefix))


class SqlKeyValueStore:
    """
    Key-value store backed by the key_values table.

    Each call outside a transaction runs in its own session and is committed
    immediately. Inside transaction() every call shares one session, which
    is committed when the block exits.

    Usage:
        store = SqlKeyValueStore()
        with store.transaction():
            store.set_int("tnt_match", 3)
            store.set_string("tnt_id", "league")
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory
        self._active: Optional[Session] = None

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Commit every write in the block at once, or roll all of them back."""
        if self._active is not None:
            # Joins the outer transaction
            yield
            return
        with get_session(self._session_factory) as session:
            self._active = session
            try:
                yield
            finally:
                self._active = None

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        if self._active is not None:
            yield self._active
            return
        with get_session(self._session_factory) as session:
            yield session

    def _set(self, key: str, value, value_type: ValueType) -> None:
        with self._session() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                entry = KeyValueEntry(key=key, value_type=value_type)
                session.add(entry)
            entry.value_type = value_type
            entry.value = _to_text(value, value_type)
            # Later reads in the same transaction must see the row
            session.flush()

    def _get(self, key: str, default, value_type: ValueType):
        with self._session() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None or entry.value_type != value_type:
                return default
            return _from_text(entry.value, value_type)

    def set_string(self, key: str, value: str) -> None:
        self._set(key, value, ValueType.STRING)

    def set_int(self, key: str, value: int) -> None:
        self._set(key, value, ValueType.INT)

    def set_bool(self, key: str, value: bool) -> None:
        self._set(key, value, ValueType.BOOL)

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._get(key, default, ValueType.STRING)

    def get_int(self, key: str, default: int = 0) -> int:
        return self._get(key, default, ValueType.INT)

    def get_bool(self, key: str, default: bool = False) -> bool:
        return self._get(key, default, ValueType.BOOL)

    def has_key(self, key: str) -> bool:
        with self._session() as session:
            return session.get(KeyValueEntry, key) is not None

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix. Returns the number deleted."""
        with self._session() as session:
            result = session.execute(
                delete(KeyValueEntry)
                .where(KeyValueEntry.key.startswith(prefix, autoescape=True))
                .execution_options(synchronize_session=False)
            )
            # Every flushed entry may be gone now
            session.expunge_all()
            return result.rowcount

    def keys(self, prefix: str = "") -> list[str]:
        with self._session() as session:
            rows = session.scalars(
                select(KeyValueEntry.key)
                .where(KeyValueEntry.key.startswith(prefix, autoescape=True))
                .order_by(KeyValueEntry.key)
            )
            return list(rows)
