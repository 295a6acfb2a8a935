"""The deduplicating storage service: fingerprint queries, chunk storage and restore."""

import base64
import binascii
import logging
import os
import sqlite3
import threading

from .bitmap import WORD_BITS, BitMap
from .bloomfilter import BloomFilter
from .chunkdb import ChunkDB
from .file_writer import FileWriter, data_file_name
from .fingerprint import Fingerprint
from .indexfile import read_chunks, read_fingerprints, write_fingerprints

QUERY_FINGERPRINT = "QueryFingerprint"
STORAGE_CHUNK = "StorageChunk"
RESTORE_FILE = "RestoreFile"

DEFAULT_BLOOM_BITS = 1 << 24
DEFAULT_CAPACITY = 64 * 1024 * 1024
DB_DIR = "DB"

_DATA_PREFIX = data_file_name("")

log = logging.getLogger(__name__)


class DedupError(Exception):
    """A request that the service could not carry out."""


def _decode_fingerprints(items):
    return [Fingerprint(int(item["high"]), int(item["low"])) for item in items]


class DedupService:
    """Keeps chunk data, the chunk index and per-backup index files under ``root``."""

    def __init__(self, root=".", bloom_bits=DEFAULT_BLOOM_BITS, capacity=DEFAULT_CAPACITY):
        self.root = os.fspath(root)
        os.makedirs(self.root, exist_ok=True)
        self.db_path = os.path.join(self.root, DB_DIR)
        self.bloom = BloomFilter(bloom_bits)
        self.writer = FileWriter(self.root, capacity)
        self._lock = threading.RLock()
        self._handlers = {
            QUERY_FINGERPRINT: self._handle_query,
            STORAGE_CHUNK: self._handle_storage,
            RESTORE_FILE: self._handle_restore,
        }
        self._resume()

    def _resume(self):
        """Rebuild the Bloom filter from the index and continue the last data file."""
        with ChunkDB(self.db_path) as db:
            known = [fp for fp, _ in db.items()]
        self.bloom.set(known, BitMap(len(known)))

        ids = [
            int(name[len(_DATA_PREFIX):])
            for name in os.listdir(self.root)
            if name.startswith(_DATA_PREFIX) and name[len(_DATA_PREFIX):].isdigit()
        ]
        if ids:
            self.writer.file_id = max(ids)
            self.writer.size = os.path.getsize(
                os.path.join(self.root, data_file_name(self.writer.file_id))
            )

    def query_fingerprints(self, remote_filename, backup_time, fingerprints, bits):
        """Mark which fingerprints the server already holds and record the backup.

        ``bits`` are the bitmap words the client sent, with its own cache hits
        already marked. Returns the updated words.
        """
        fps = list(fingerprints)
        words = list(bits)
        if len(words) < -(-len(fps) // WORD_BITS):
            raise DedupError(f"{len(words)} bitmap words cannot cover {len(fps)} fingerprints")
        bitmap = BitMap(0)
        bitmap.resize(len(words))
        try:
            for idx, word in enumerate(words):
                bitmap.set_word(idx, word)
        except ValueError as err:
            raise DedupError(f"bad bitmap word: {err}") from err

        with self._lock:
            try:
                with ChunkDB(self.db_path) as db:
                    self.bloom.get(fps, bitmap, db)
            except (sqlite3.Error, OSError) as err:
                raise DedupError("Query BloomFilter failed") from err
            self.bloom.set(fps, bitmap)
            try:
                write_fingerprints(os.path.join(self.root, remote_filename), backup_time, fps)
            except OSError as err:
                raise DedupError("Write index file failed") from err
        return bitmap.words()

    def storage_chunk(self, chunks, fingerprints):
        """Store chunk data under the matching fingerprints; return how many were stored."""
        chunks = list(chunks)
        fps = list(fingerprints)
        if len(chunks) != len(fps):
            raise DedupError(f"{len(chunks)} chunks but {len(fps)} fingerprints")
        with self._lock:
            try:
                with ChunkDB(self.db_path) as db:
                    for data, fp in zip(chunks, fps):
                        try:
                            record = self.writer.write(data)
                        except OSError as err:
                            raise DedupError("Write data file failed") from err
                        db.put(fp, record)
            except (sqlite3.Error, OSError) as err:
                raise DedupError("Write chunk index failed") from err
        return len(chunks)

    def _latest_backup(self, index_dir):
        try:
            names = [
                name for name in os.listdir(index_dir)
                if os.path.isfile(os.path.join(index_dir, name))
            ]
        except OSError as err:
            raise DedupError("Fail to open index file") from err
        if not names:
            raise DedupError("Fail to open index file")
        return max(names)

    def restore_file(self, remote_filename, backup_time=None):
        """Return the bytes of a backed-up file; the latest backup when no time is given."""
        index_dir = os.path.join(self.root, remote_filename)
        with self._lock:
            if backup_time is None:
                backup_time = self._latest_backup(index_dir)
            try:
                fps = read_fingerprints(os.path.join(index_dir, backup_time))
            except OSError as err:
                raise DedupError("Fail to open index file") from err
            except ValueError as err:
                raise DedupError("Read index file error") from err
            try:
                with ChunkDB(self.db_path) as db:
                    records = [db.get(fp) for fp in fps]
            except KeyError as err:
                raise DedupError("Fail to get chunk info") from err
            except (sqlite3.Error, OSError) as err:
                raise DedupError("Fail to open chunk index") from err
            try:
                return read_chunks(records, self.root)
            except (OSError, EOFError) as err:
                raise DedupError("Fail to read chunk") from err

    def _handle_query(self, payload):
        try:
            remote_filename = str(payload["remote_filename"])
            backup_time = str(payload["backup_time"])
            fps = _decode_fingerprints(payload["fingerprints"])
            bits = [int(word) for word in payload.get("bits", [])]
        except (KeyError, TypeError, ValueError, AttributeError) as err:
            raise DedupError(f"malformed request: {err}") from err
        return {"bits": self.query_fingerprints(remote_filename, backup_time, fps, bits)}

    def _handle_storage(self, payload):
        try:
            chunks = [base64.b64decode(item, validate=True) for item in payload["chunks"]]
            fps = _decode_fingerprints(payload["fingerprints"])
        except (KeyError, TypeError, ValueError, AttributeError, binascii.Error) as err:
            raise DedupError(f"malformed request: {err}") from err
        return {"stored": self.storage_chunk(chunks, fps)}

    def _handle_restore(self, payload):
        try:
            remote_filename = str(payload["remote_filename"])
            backup_time = payload.get("backup_time")
        except (KeyError, TypeError, AttributeError) as err:
            raise DedupError(f"malformed request: {err}") from err
        if backup_time is not None:
            backup_time = str(backup_time)
        data = self.restore_file(remote_filename, backup_time)
        return {"file_data": base64.b64encode(data).decode("ascii")}

    def handle(self, method, payload):
        """Answer a decoded request; failures come back as ``result: False``."""
        try:
            handler = self._handlers.get(method)
            if handler is None:
                raise DedupError(f"unknown method: {method}")
            return {"result": True, **handler(payload)}
        except DedupError as err:
            log.error("%s: %s", method, err)
            return {"result": False, "error": str(err)}