# dedupstore

A small deduplicating backup store. Files are cut into variable-sized chunks
with content-defined chunking (FastCDC), each chunk is identified by a
128-bit fingerprint, and only chunks the server does not already hold are
sent and written to disk. A restore reassembles the file from the stored
chunks.

The package has no dependencies outside the standard library.

## Installing

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Running the server

```
dedupstore-server [--port 8000] [--listen_addr HOST:PORT] [--idle_timeout_s N]
                  [--root DIR] [--bloom_bits N] [--capacity BYTES]
```

- `--port`: TCP port to listen on (default 8000, all interfaces).
- `--listen_addr`: `host:port` to listen on; overrides `--port`.
- `--idle_timeout_s`: close connections idle for this many seconds
  (default -1, no timeout).
- `--root`: directory holding the stored data (default the working directory).
- `--bloom_bits`: size of the Bloom filter in bits (default 2^24).
- `--capacity`: size limit of one data file in bytes (default 64 MiB).

Below `--root` the server keeps:

- `DB/chunks.sqlite3`, the index from fingerprint to chunk location;
- `datafile0`, `datafile1`, ...: the chunk data, appended; a new file is
  started when the next chunk would push the current one past `--capacity`;
- `<remote name>/<backup time>`: one index file per backup, listing the
  file's fingerprints in order, one `high-low` decimal pair per line.

On start the server rebuilds its Bloom filter from the chunk index and
continues appending to the newest data file.

Requests are HTTP `POST /<method>` with a JSON body, answered with JSON
holding `result` (and `error` when it is false). The methods are
`QueryFingerprint`, `StorageChunk` and `RestoreFile`; chunk and file data
travel base64-encoded.

## Running the client

```
dedupstore-client [--server HOST:PORT] [--timeout_ms 3000] [--max_retry 3]
```

The client reads commands from standard input, three whitespace-separated
words each:

```
backup  <local file>  <remote name>
restore <local file>  <remote name>
```

`backup` chunks the local file, checks its fingerprints against its own
cache of recently sent fingerprints and then against the server, and uploads
only the missing chunks. The backup is recorded under the remote name and the
current local time (`YYYY-mm-dd-HH:MM:SS`). `restore` fetches the latest
backup stored under the remote name and appends its contents to the local
file. Unknown commands are skipped; a failed command is logged and the client
goes on with the next one. Connection failures are retried `--max_retry`
times.

The remote name becomes a directory below the server's root, so it should be
a plain name.

## How deduplication works

- `dedupstore.fastcdc.FastCDC` cuts a file into chunks (the client uses
  64 KiB minimum, 256 KiB average, 512 KiB maximum) and gives each a
  `Fingerprint` (`dedupstore.fingerprint`).
- `dedupstore.lru.FingerprintLRU` remembers up to a million recently sent
  fingerprints on the client.
- `dedupstore.bloomfilter.BloomFilter` tells the server quickly that a
  fingerprint is surely unknown; possible hits are confirmed in
  `dedupstore.chunkdb.ChunkDB`, which maps fingerprints to `DBChunk`
  records (data file id, offset, length, reference count).
- `dedupstore.file_writer.FileWriter` appends new chunks to the data files;
  `dedupstore.indexfile` writes and reads per-backup index files and
  reassembles chunks.
- Which chunks are already present travels between client and server as the
  64-bit words of a `dedupstore.bitmap.BitMap`, one bit per chunk.

## Using it as a library

`DedupService` (`dedupstore.service`) holds the server logic and can be used
without a network; its failures are raised as `DedupError`.

```python
from dedupstore.bitmap import BitMap
from dedupstore.fastcdc import FastCDC
from dedupstore.service import DedupService

service = DedupService("store")
cdc = FastCDC(64 * 1024, 256 * 1024, 512 * 1024)

chunks = cdc.parse("archive.tar")
fps = [chunk.fingerprint for chunk in chunks]

bitmap = BitMap(len(fps))
for idx, word in enumerate(service.query_fingerprints("archive.tar", "first", fps, bitmap.words())):
    bitmap.set_word(idx, word)

with open("archive.tar", "rb") as file:
    missing = [(i, c) for i, c in enumerate(chunks) if not bitmap.get(i)]
    data = []
    for _, chunk in missing:
        file.seek(chunk.offset)
        data.append(file.read(chunk.length))
service.storage_chunk(data, [chunk.fingerprint for _, chunk in missing])

restored = service.restore_file("archive.tar")  # latest backup
```

`DedupClient` (`dedupstore.client`) does the same against a running server
with `backup(local, remote)` and `restore(remote, local)`; `make_server`
(`dedupstore.server`) binds the HTTP server around a `DedupService`.

## What it does not do

- Stored chunks are never deleted: reference counts are kept in the chunk
  records but nothing removes unreferenced data.
- Data is neither compressed nor encrypted, and the server has no
  authentication; run it only where its clients are trusted.
- A restore always returns the latest backup of a remote name through the
  client; older backups are reachable only through
  `DedupService.restore_file` with an explicit backup time.