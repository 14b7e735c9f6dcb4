# expediter/pdf_cache.py
"""Short-lived in-process store bridging PDF generation and download.

Entries live in this process only; a deployment with several workers needs
sticky sessions or a shared blob store behind the same interface.
"""

from __future__ import annotations

import base64
import logging
import threading
import time
import uuid
from datetime import datetime
from typing import Dict, Optional

from flask import current_app

from expediter.errors import NotFoundError

log = logging.getLogger(__name__)

PDF_CONTENT_TYPE = 'application/pdf'


def new_pdf_id(suffix: str = '') -> str:
    suffix = suffix or uuid.uuid4().hex[:8]
    return f"pdf_{int(time.time() * 1000)}_{suffix}"


def make_entry(file_name: str, data_uri: str, created_at: str | None = None) -> dict:
    return {
        'file_name': file_name,
        'content_type': PDF_CONTENT_TYPE,
        'data': data_uri,
        'created_at': created_at or datetime.utcnow().isoformat(timespec='microseconds'),
    }


def decode_payload(data: str) -> bytes:
    """Raw bytes of a base64 payload, with or without a ``data:`` prefix."""
    if 'base64,' in data:
        data = data.split('base64,', 1)[1]
    return base64.b64decode(data)


class TransientPdfCache:
    """Bounded map of generated PDFs.

    Holds at most ``max_entries``; inserting beyond that evicts the oldest
    entries by ``created_at``. ``schedule_delete`` drops an entry
    ``ttl_after_read`` seconds later.
    """

    def __init__(self, max_entries: int = 10, ttl_after_read: float = 60) -> None:
        self.max_entries = max_entries
        self.ttl_after_read = ttl_after_read
        self._entries: Dict[str, dict] = {}
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pdf_id: str) -> bool:
        return pdf_id in self._entries

    def put(self, pdf_id: str, entry: dict) -> None:
        with self._lock:
            self._entries[pdf_id] = entry
            overflow = len(self._entries) - self.max_entries
            if overflow > 0:
                oldest = sorted(self._entries, key=lambda k: self._entries[k]['created_at'])
                for evicted in oldest[:overflow]:
                    self._drop(evicted)
                    log.debug("Evicted PDF %s from cache", evicted)

    def get(self, pdf_id: str) -> Optional[dict]:
        with self._lock:
            return self._entries.get(pdf_id)

    def require(self, pdf_id: str) -> dict:
        entry = self.get(pdf_id)
        if entry is None:
            raise NotFoundError("PDF not found or expired")
        return entry

    def delete(self, pdf_id: str) -> None:
        with self._lock:
            self._drop(pdf_id)

    def schedule_delete(self, pdf_id: str, delay: float | None = None) -> threading.Timer:
        delay = self.ttl_after_read if delay is None else delay
        timer = threading.Timer(delay, self.delete, args=(pdf_id,))
        timer.daemon = True
        with self._lock:
            previous = self._timers.pop(pdf_id, None)
            if previous is not None:
                previous.cancel()
            self._timers[pdf_id] = timer
        timer.start()
        return timer

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            for pdf_id in list(self._entries):
                self._drop(pdf_id)
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()

    def _drop(self, pdf_id: str) -> None:
        self._entries.pop(pdf_id, None)
        timer = self._timers.pop(pdf_id, None)
        if timer is not None and timer is not threading.current_thread():
            timer.cancel()


def current_cache() -> TransientPdfCache:
    return current_app.extensions['pdf_cache']
