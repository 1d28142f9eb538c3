from pickup_client.storage import MemoryStore, SQLiteStore


def test_memory_store_returns_copies():
    store = MemoryStore()
    value = {'ids': [1]}
    store.set('key', value)
    value['ids'].append(2)

    assert store.get('key') == {'ids': [1]}
    assert store.get('missing', 'fallback') == 'fallback'


def test_sqlite_store_survives_reopen(tmp_path):
    path = str(tmp_path / 'state.db')
    SQLiteStore(path).set('auth_token', 'abc')

    reopened = SQLiteStore(path)
    assert reopened.get('auth_token') == 'abc'
    assert reopened.keys() == ['auth_token']

    reopened.delete('auth_token')
    assert SQLiteStore(path).get('auth_token') is None
