"""Key-value persistence for device state. Values are JSON documents."""
import json
import sqlite3
from contextlib import contextmanager


class MemoryStore:
    def __init__(self, initial=None):
        self._data = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key, default=None):
        if key not in self._data:
            return default
        return json.loads(self._data[key])

    def set(self, key, value):
        # Round-trip through JSON so callers never share mutable state
        self._data[key] = json.dumps(value)

    def delete(self, key):
        self._data.pop(key, None)

    def keys(self):
        return list(self._data)


class SQLiteStore:
    """Survives restarts; one connection per operation like the device state DB."""

    def __init__(self, path):
        self.path = path
        with self._conn() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                  key TEXT PRIMARY KEY,
                  value_json TEXT NOT NULL
                );
                """
            )

    @contextmanager
    def _conn(self):
        con = sqlite3.connect(self.path)
        try:
            yield con
            con.commit()
        finally:
            con.close()

    def get(self, key, default=None):
        with self._conn() as con:
            row = con.execute("SELECT value_json FROM kv WHERE key=?", (key,)).fetchone()
        if row is None:
            return default
        return json.loads(row[0])

    def set(self, key, value):
        with self._conn() as con:
            con.execute(
                "INSERT OR REPLACE INTO kv(key, value_json) VALUES (?,?)",
                (key, json.dumps(value, ensure_ascii=False)),
            )

    def delete(self, key):
        with self._conn() as con:
            con.execute("DELETE FROM kv WHERE key=?", (key,))

    def keys(self):
        with self._conn() as con:
            return [row[0] for row in con.execute("SELECT key FROM kv ORDER BY key")]
