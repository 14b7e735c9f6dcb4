# expediter/storage.py
"""Durable key-value backends and the counters used for document numbering."""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Dict, Iterable

from expediter import db
from expediter.models import StoreEntry

log = logging.getLogger(__name__)


class SqlKeyValueStore:
    """Key-value medium backed by the ``store_entry`` table.

    Must be used inside an application context.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        entry = db.session.get(StoreEntry, key)
        if entry is None:
            return default
        return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            entry = db.session.get(StoreEntry, key)
            if entry is None:
                db.session.add(StoreEntry(key=key, value=copy.deepcopy(value)))
            else:
                entry.value = copy.deepcopy(value)
        db.session.commit()

    def delete(self, key: str) -> None:
        db.session.query(StoreEntry).filter_by(key=key).delete()
        db.session.commit()

    def keys(self) -> list[str]:
        return [k for (k,) in db.session.query(StoreEntry.key).order_by(StoreEntry.key)]

    def transact(self, keys: Iterable[str], fn: Callable[[Dict[str, Any]], Dict[str, Any]]) -> Dict[str, Any]:
        """Read ``keys``, apply ``fn`` and write its result in one transaction.

        Rows are locked with ``SELECT ... FOR UPDATE`` where the database
        supports it; the process-wide lock covers SQLite.
        """
        keys = list(keys)
        with self._lock:
            try:
                rows = (
                    db.session.query(StoreEntry)
                    .filter(StoreEntry.key.in_(keys))
                    .with_for_update()
                    .all()
                )
                current = {k: None for k in keys}
                current.update({r.key: copy.deepcopy(r.value) for r in rows})
                updated = fn(dict(current))
                by_key = {r.key: r for r in rows}
                for key, value in updated.items():
                    if key in by_key:
                        by_key[key].value = value
                    else:
                        db.session.add(StoreEntry(key=key, value=value))
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
        return updated


class MemoryKeyValueStore:
    """Process-local stand-in for the durable medium."""

    def __init__(self, initial: Dict[str, Any] | None = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, values: Dict[str, Any]) -> None:
        with self._lock:
            for key, value in values.items():
                self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

    def transact(self, keys: Iterable[str], fn: Callable[[Dict[str, Any]], Dict[str, Any]]) -> Dict[str, Any]:
        with self._lock:
            current = {k: copy.deepcopy(self._data.get(k)) for k in keys}
            updated = fn(current)
            for key, value in updated.items():
                self._data[key] = copy.deepcopy(value)
        return updated


def _counter_keys(name: str) -> tuple[str, str]:
    return f'{name}Counter', f'{name}Year'


def _next_values(current: Dict[str, Any], counter_key: str, year_key: str, year: str) -> Dict[str, Any]:
    if current.get(year_key) != year:
        seq = 1
    else:
        seq = int(current.get(counter_key) or 0) + 1
    return {counter_key: seq, year_key: year}


class PersistentCounterStore:
    """Yearly sequences kept in the key-value medium.

    ``increment('permit', '26')`` updates ``permitCounter``/``permitYear``
    atomically and returns the new sequence value.
    """

    def __init__(self, kv) -> None:
        self.kv = kv

    def increment(self, name: str, year: str) -> int:
        counter_key, year_key = _counter_keys(name)
        result = self.kv.transact(
            [counter_key, year_key],
            lambda current: _next_values(current, counter_key, year_key, year),
        )
        return result[counter_key]

    def peek(self, name: str, year: str) -> int:
        counter_key, year_key = _counter_keys(name)
        current = {counter_key: self.kv.get(counter_key), year_key: self.kv.get(year_key)}
        return _next_values(current, counter_key, year_key, year)[counter_key]


class EphemeralCounterStore:
    """Same contract as :class:`PersistentCounterStore`, lost on restart."""

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def increment(self, name: str, year: str) -> int:
        counter_key, year_key = _counter_keys(name)
        with self._lock:
            self._values.update(_next_values(self._values, counter_key, year_key, year))
            return self._values[counter_key]

    def peek(self, name: str, year: str) -> int:
        counter_key, year_key = _counter_keys(name)
        with self._lock:
            return _next_values(self._values, counter_key, year_key, year)[counter_key]


def make_counter_store(backend: str, kv):
    if backend == 'persistent':
        return PersistentCounterStore(kv)
    if backend == 'memory':
        log.warning("Using in-memory counters; numbering restarts with the process")
        return EphemeralCounterStore()
    raise ValueError(f"Unknown counter backend: {backend!r}")
