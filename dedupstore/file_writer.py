"""Appends chunk data to a sequence of size-capped data files."""

import os

from .chunkdb import DBChunk


def data_file_name(file_id):
    """Name of the data file with the given id."""
    return f"datafile{file_id}"


class FileWriter:
    """Writes chunks into ``datafile<N>`` files, moving on when one is full."""

    def __init__(self, directory, capacity):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive: {capacity}")
        self.directory = os.fspath(directory)
        self.capacity = capacity
        self.file_id = 0
        self.size = 0

    def _path(self):
        return os.path.join(self.directory, data_file_name(self.file_id))

    def write(self, data):
        """Append ``data`` and return the record of where it was stored."""
        data = bytes(data)
        os.makedirs(self.directory, exist_ok=True)
        if self.size + len(data) > self.capacity:
            self.file_id += 1
            self.size = 0
        with open(self._path(), "ab") as file:
            file.write(data)
        chunk = DBChunk(self.file_id, self.size, len(data), 1)
        self.size += len(data)
        return chunk