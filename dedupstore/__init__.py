"""Deduplicating backup store: content-defined chunking, a chunk server and a client."""

__version__ = "0.1.0"

__all__ = [
    "bitmap",
    "fingerprint",
    "timeutils",
    "fastcdc",
    "lru",
    "chunkdb",
    "bloomfilter",
    "file_writer",
    "indexfile",
    "service",
    "server",
    "client",
]