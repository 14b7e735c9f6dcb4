import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from expediter.errors import NotFoundError
from expediter.pdf_cache import TransientPdfCache, decode_payload, make_entry, new_pdf_id


def entry(n):
    return make_entry(f'doc-{n}.pdf', 'data:application/pdf;base64,JVBERi0=',
                      created_at=f'2024-03-05T10:00:{n:02d}')


def test_eleventh_entry_evicts_the_oldest():
    cache = TransientPdfCache(max_entries=10)
    for n in range(10):
        cache.put(f'pdf_{n}', entry(n))
    assert len(cache) == 10
    cache.put('pdf_10', entry(10))
    assert len(cache) == 10
    assert 'pdf_0' not in cache
    assert 'pdf_10' in cache
    assert 'pdf_1' in cache


def test_require_raises_for_unknown_id():
    cache = TransientPdfCache()
    with pytest.raises(NotFoundError) as exc:
        cache.require('pdf_missing')
    assert exc.value.message == 'PDF not found or expired'


def test_schedule_delete_removes_entry_later():
    cache = TransientPdfCache(ttl_after_read=60)
    cache.put('pdf_a', entry(1))
    timer = cache.schedule_delete('pdf_a', delay=0.05)
    assert 'pdf_a' in cache
    timer.join(2)
    assert 'pdf_a' not in cache


def test_rescheduling_replaces_previous_timer():
    cache = TransientPdfCache()
    cache.put('pdf_a', entry(1))
    first = cache.schedule_delete('pdf_a', delay=30)
    second = cache.schedule_delete('pdf_a', delay=30)
    assert first is not second
    first.join(2)
    assert not first.is_alive()
    assert second.is_alive()
    cache.clear()
    assert len(cache) == 0


def test_ids_and_payload_helpers():
    pdf_id = new_pdf_id('abc123')
    assert pdf_id.startswith('pdf_') and pdf_id.endswith('_abc123')
    item = make_entry('invoice-1.pdf', 'data:application/pdf;base64,JVBERi0=')
    assert item['content_type'] == 'application/pdf'
    assert decode_payload(item['data']) == b'%PDF-'
    assert decode_payload('JVBERi0=') == b'%PDF-'
