"""Client that backs files up to, and restores them from, the dedup server."""

import argparse
import base64
import binascii
import json
import logging
import sys
import urllib.error
import urllib.request

from .bitmap import BitMap
from .fastcdc import FastCDC
from .lru import FingerprintLRU
from .service import QUERY_FINGERPRINT, RESTORE_FILE, STORAGE_CHUNK, DedupError
from .timeutils import date_time, time_ns

DEFAULT_SERVER = "0.0.0.0:8000"

log = logging.getLogger(__name__)


def _encode_fingerprints(fps):
    return [{"high": fp.high, "low": fp.low} for fp in fps]


class DedupClient:
    """Chunks files locally and ships only chunks the server does not hold."""

    def __init__(self, server=DEFAULT_SERVER, timeout=3.0, max_retry=3):
        self.server = server
        self.timeout = timeout
        self.max_retry = max_retry
        self.chunker = FastCDC(64 * 1024, 256 * 1024, 512 * 1024)
        self.cache = FingerprintLRU(1024 * 1024)

    def call(self, method, payload):
        """Send one request, retrying on connection failures; raise DedupError on failure."""
        body = json.dumps(payload).encode("utf-8")
        url = f"http://{self.server}/{method}"
        last_error = None
        for _ in range(self.max_retry + 1):
            request = urllib.request.Request(
                url, data=body, method="POST",
                headers={"Content-Type": "application/json"},
            )
            try:
                with urllib.request.urlopen(request, timeout=self.timeout) as response:
                    reply = json.loads(response.read())
                break
            except urllib.error.HTTPError as err:
                raise DedupError(f"{method} failed: HTTP {err.code}") from err
            except ValueError as err:
                raise DedupError(f"{method} failed: malformed reply") from err
            except OSError as err:
                last_error = err
        else:
            raise DedupError(f"{method} failed: {last_error}") from last_error
        if not isinstance(reply, dict) or not reply.get("result"):
            message = reply.get("error") if isinstance(reply, dict) else None
            raise DedupError(message or f"{method} failed")
        return reply

    def backup(self, local_filename, remote_filename):
        """Back ``local_filename`` up as ``remote_filename``; return chunk statistics."""
        start = time_ns()
        chunks = self.chunker.parse(local_filename)
        elapsed_ms = (time_ns() - start) / 1e6
        size = self.chunker.pos
        mib = size / (1024 * 1024)
        log.info("%.2fMB in %.2fMS (%.3f MB/S)", mib, elapsed_ms,
                 1000.0 * mib / elapsed_ms if elapsed_ms else 0.0)
        log.info("total chunks : %d", len(chunks))

        fps = [chunk.fingerprint for chunk in chunks]
        bitmap = BitMap(len(fps))
        client_cached = self.cache.get(fps, bitmap)
        self.cache.put(fps)
        log.info("client cache chunks : %d", client_cached)

        reply = self.call(QUERY_FINGERPRINT, {
            "remote_filename": remote_filename,
            "backup_time": date_time(),
            "fingerprints": _encode_fingerprints(fps),
            "bits": bitmap.words(),
        })
        try:
            for idx, word in enumerate(reply["bits"]):
                bitmap.set_word(idx, int(word))
        except (KeyError, TypeError, ValueError, IndexError) as err:
            raise DedupError("malformed query reply") from err

        marked = sum(map(bitmap.get, range(len(fps))))
        log.info("server cache chunks : %d storage chunks : %d",
                 marked - client_cached, len(chunks) - marked)

        to_store = []
        with open(local_filename, "rb") as file:
            for idx, chunk in enumerate(chunks):
                if bitmap.get(idx):
                    continue
                file.seek(chunk.offset)
                data = file.read(chunk.length)
                if len(data) != chunk.length:
                    raise DedupError(f"fail to read {local_filename} at {chunk.offset}")
                to_store.append((data, chunk.fingerprint))

        self.call(STORAGE_CHUNK, {
            "chunks": [base64.b64encode(data).decode("ascii") for data, _ in to_store],
            "fingerprints": _encode_fingerprints(fp for _, fp in to_store),
        })
        return {
            "chunks": len(chunks),
            "client_cached": client_cached,
            "server_cached": marked - client_cached,
            "stored": len(to_store),
            "size": size,
        }

    def restore(self, remote_filename, local_filename):
        """Append the latest backup of ``remote_filename`` to ``local_filename``."""
        reply = self.call(RESTORE_FILE, {"remote_filename": remote_filename})
        try:
            data = base64.b64decode(reply["file_data"], validate=True)
        except (KeyError, TypeError, ValueError, binascii.Error) as err:
            raise DedupError("malformed restore reply") from err
        with open(local_filename, "ab") as file:
            file.write(data)
        return len(data)


def run_commands(client, lines):
    """Run ``backup|restore LOCAL REMOTE`` commands read as whitespace-separated words.

    Returns ``(command, outcome)`` pairs, the outcome being the command's
    return value or the error it raised. Unknown commands are skipped.
    """
    words = iter([word for line in lines for word in line.split()])
    outcomes = []
    for cmd, local_filename, remote_filename in zip(words, words, words):
        try:
            if cmd == "backup":
                outcome = client.backup(local_filename, remote_filename)
            elif cmd == "restore":
                outcome = client.restore(remote_filename, local_filename)
            else:
                continue
        except (DedupError, OSError) as err:
            log.error("%s %s %s: %s", cmd, local_filename, remote_filename, err)
            outcome = err
        outcomes.append((cmd, outcome))
    return outcomes


def main(argv=None):
    parser = argparse.ArgumentParser(description="Back files up to a dedup server.")
    parser.add_argument("--server", default=DEFAULT_SERVER, help="host:port of the server")
    parser.add_argument("--timeout_ms", type=int, default=3000, help="request timeout in ms")
    parser.add_argument("--max_retry", type=int, default=3,
                        help="retries, not counting the first attempt")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    client = DedupClient(args.server, args.timeout_ms / 1000, args.max_retry)
    run_commands(client, sys.stdin)
    return 0