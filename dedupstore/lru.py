"""A bounded least-recently-used set of fingerprints."""

from collections import OrderedDict


class FingerprintLRU:
    """Remembers recently seen fingerprints, evicting the least recent."""

    def __init__(self, capacity):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1: {capacity}")
        self.capacity = capacity
        self._entries = OrderedDict()

    def get(self, fps, bitmap):
        """Mark in ``bitmap`` the positions of cached fingerprints.

        Every hit becomes the most recently used. Returns the number of hits.
        """
        hits = 0
        for i, fp in enumerate(fps):
            if fp in self._entries:
                self._entries.move_to_end(fp)
                bitmap.set(i)
                hits += 1
        return hits

    def put(self, fps):
        """Insert fingerprints as most recently used, evicting as needed."""
        for fp in fps:
            self._entries.pop(fp, None)
            if len(self._entries) == self.capacity:
                self._entries.popitem(last=False)
            self._entries[fp] = None

    def __len__(self):
        return len(self._entries)

    def __contains__(self, fp):
        return fp in self._entries