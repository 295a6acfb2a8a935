"""Per-backup index files and reassembly of stored chunks."""

import os

from .file_writer import data_file_name
from .fingerprint import Fingerprint


def write_fingerprints(dir_name, file_name, fps):
    """Write one ``high-low`` decimal line per fingerprint into ``dir_name/file_name``.

    The directory is created if missing (its parent must exist). Returns the
    path written.
    """
    dir_name = os.fspath(dir_name)
    if not os.path.exists(dir_name):
        os.mkdir(dir_name)
    path = os.path.join(dir_name, os.fspath(file_name))
    with open(path, "w", encoding="ascii") as file:
        file.writelines(f"{fp.high}-{fp.low}\n" for fp in fps)
    return path


def _parse_line(line, lineno):
    high, sep, low = line.partition("-")
    if not (sep and high.isdigit() and low.isdigit()):
        raise ValueError(f"malformed index line {lineno}: {line!r}")
    return Fingerprint(int(high), int(low))


def read_fingerprints(path):
    """Read the fingerprints listed in an index file, in order."""
    with open(path, encoding="ascii") as file:
        return [
            _parse_line(line.strip(), lineno)
            for lineno, line in enumerate(file, 1)
            if line.strip()
        ]


def read_chunks(chunks, directory="."):
    """Concatenate the data of ``chunks`` read from the data files in ``directory``."""
    parts = []
    for chunk in chunks:
        path = os.path.join(os.fspath(directory), data_file_name(chunk.file_id))
        with open(path, "rb") as file:
            file.seek(chunk.offset)
            data = file.read(chunk.length)
        if len(data) != chunk.length:
            raise EOFError(
                f"{path}: wanted {chunk.length} bytes at {chunk.offset}, got {len(data)}"
            )
        parts.append(data)
    return b"".join(parts)