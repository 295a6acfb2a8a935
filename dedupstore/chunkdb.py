"""Chunk location records and the persistent fingerprint-to-chunk index."""

import os
import sqlite3
import struct
from dataclasses import dataclass

from .fingerprint import Fingerprint

_RECORD = struct.Struct("<iIIi")
_DB_FILE = "chunks.sqlite3"


@dataclass
class DBChunk:
    """Where a stored chunk lives: data file id, offset, length and refcount."""

    file_id: int = 0
    offset: int = 0
    length: int = 0
    refcnt: int = 0

    def add_ref(self):
        self.refcnt += 1

    def sub_ref(self):
        self.refcnt -= 1

    def to_bytes(self):
        """Serialise as 16 little-endian bytes: file id, offset, length, refcnt."""
        try:
            return _RECORD.pack(self.file_id, self.offset, self.length, self.refcnt)
        except struct.error as err:
            raise ValueError(f"chunk record out of range: {self}") from err

    @classmethod
    def from_bytes(cls, raw):
        """Inverse of :meth:`to_bytes`."""
        if len(raw) != _RECORD.size:
            raise ValueError(f"chunk record needs {_RECORD.size} bytes, got {len(raw)}")
        return cls(*_RECORD.unpack(bytes(raw)))


class ChunkDB:
    """An on-disk map from fingerprints to chunk records, ordered by key bytes."""

    def __init__(self, path):
        self.path = os.fspath(path)
        self._conn = None

    @property
    def is_open(self):
        return self._conn is not None

    def open(self):
        """Open the database, creating it if it does not exist."""
        if self._conn is not None:
            raise RuntimeError(f"database already open: {self.path}")
        os.makedirs(self.path, exist_ok=True)
        conn = sqlite3.connect(os.path.join(self.path, _DB_FILE))
        conn.execute(
            "CREATE TABLE IF NOT EXISTS chunks (key BLOB PRIMARY KEY, value BLOB NOT NULL)"
        )
        conn.commit()
        self._conn = conn
        return self

    def close(self):
        if self._conn is None:
            raise RuntimeError(f"database is not open: {self.path}")
        self._conn.close()
        self._conn = None

    def __enter__(self):
        if self._conn is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _db(self):
        if self._conn is None:
            raise RuntimeError(f"database is not open: {self.path}")
        return self._conn

    def get(self, fp):
        """Return the chunk record for ``fp``; raise KeyError if absent."""
        row = self._db().execute(
            "SELECT value FROM chunks WHERE key = ?", (fp.to_bytes(),)
        ).fetchone()
        if row is None:
            raise KeyError(fp)
        return DBChunk.from_bytes(row[0])

    def put(self, fp, chunk):
        """Store ``chunk`` under ``fp``, replacing any earlier record."""
        db = self._db()
        db.execute(
            "INSERT OR REPLACE INTO chunks (key, value) VALUES (?, ?)",
            (fp.to_bytes(), chunk.to_bytes()),
        )
        db.commit()

    def remove(self, fp):
        """Delete the record for ``fp``; deleting a missing key is not an error."""
        db = self._db()
        db.execute("DELETE FROM chunks WHERE key = ?", (fp.to_bytes(),))
        db.commit()

    def items(self):
        """Yield ``(Fingerprint, DBChunk)`` pairs in key byte order."""
        rows = self._db().execute("SELECT key, value FROM chunks ORDER BY key").fetchall()
        for key, value in rows:
            yield Fingerprint.from_bytes(key), DBChunk.from_bytes(value)

    def __len__(self):
        return self._db().execute("SELECT COUNT(*) FROM chunks").fetchone()[0]