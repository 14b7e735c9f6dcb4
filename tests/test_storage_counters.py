import os
import sys
import threading
from datetime import datetime

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from expediter import create_app
from expediter.storage import (
    EphemeralCounterStore,
    MemoryKeyValueStore,
    PersistentCounterStore,
    SqlKeyValueStore,
    make_counter_store,
)
from expediter.store import DomainStore


def test_persistent_counter_is_yearly():
    kv = MemoryKeyValueStore()
    counters = PersistentCounterStore(kv)
    assert counters.peek('permit', '24') == 1
    assert counters.increment('permit', '24') == 1
    assert counters.increment('permit', '24') == 2
    assert kv.get('permitCounter') == 2
    assert kv.get('permitYear') == '24'
    assert counters.peek('permit', '24') == 3
    # new year starts over
    assert counters.increment('permit', '25') == 1
    assert kv.get('permitYear') == '25'


def test_counters_are_independent_per_name():
    counters = EphemeralCounterStore()
    assert counters.increment('permit', '24') == 1
    assert counters.increment('proposal', '24') == 1
    assert counters.increment('permit', '24') == 2


def test_counter_survives_new_store_over_same_medium():
    kv = MemoryKeyValueStore()
    PersistentCounterStore(kv).increment('permit', '24')
    assert PersistentCounterStore(kv).increment('permit', '24') == 2


def test_make_counter_store():
    kv = MemoryKeyValueStore()
    assert isinstance(make_counter_store('persistent', kv), PersistentCounterStore)
    assert isinstance(make_counter_store('memory', kv), EphemeralCounterStore)
    with pytest.raises(ValueError):
        make_counter_store('redis', kv)


def test_sql_store_roundtrip_and_transact():
    app = create_app('testing')
    with app.app_context():
        kv = SqlKeyValueStore()
        kv.set('clients', [{'id': '1', 'name': 'Acme'}])
        value = kv.get('clients')
        value[0]['name'] = 'changed'
        assert kv.get('clients')[0]['name'] == 'Acme'

        counters = PersistentCounterStore(kv)
        assert counters.increment('permit', '24') == 1
        assert counters.increment('permit', '24') == 2
        assert kv.get('permitCounter') == 2
        assert 'permitYear' in kv.keys()

        kv.delete('clients')
        assert kv.get('clients', []) == []


def test_sql_transact_rolls_back_on_error():
    app = create_app('testing')
    with app.app_context():
        kv = SqlKeyValueStore()
        kv.set('permitCounter', 5)

        def boom(current):
            raise RuntimeError('fail')

        with pytest.raises(RuntimeError):
            kv.transact(['permitCounter'], boom)
        assert kv.get('permitCounter') == 5


def test_concurrent_increments_never_repeat():
    counters = PersistentCounterStore(MemoryKeyValueStore())
    results = []

    def worker():
        for _ in range(50):
            results.append(counters.increment('permit', '24'))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(results) == list(range(1, 401))


def test_concurrent_permits_get_unique_numbers():
    kv = MemoryKeyValueStore()
    store = DomainStore(kv, PersistentCounterStore(kv), seed=False,
                        clock=lambda: datetime(2024, 6, 1))
    store.load()
    client_id = store.add_client({'name': 'Acme Bank', 'email': 'ops@acme.test'})

    def worker(n):
        for i in range(20):
            store.add_permit({'title': f'Permit {n}-{i}', 'client_id': client_id})

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    numbers = [p['permit_number'] for p in store.list_permits()]
    assert len(numbers) == 160
    assert len(set(numbers)) == 160
    assert sorted(numbers)[-1] == '24-160'
    assert kv.get('permitCounter') == 160
