"""A three-hash Bloom filter over fingerprints, backed by a BitMap."""

from .bitmap import WORD_BITS, BitMap

BLOOMFILTER_SHIFT = 32
BLOOMFILTER_MASK = 0xFFFFFFFF


class BloomFilter:
    """Fast negative lookup in front of the chunk database."""

    def __init__(self, size):
        self._bitmap = BitMap(size)
        self._nbits = len(self._bitmap) * WORD_BITS

    def hash1(self, fp):
        return fp.high & BLOOMFILTER_MASK

    def hash2(self, fp):
        return fp.low & BLOOMFILTER_MASK

    def hash3(self, fp):
        return ((fp.high >> BLOOMFILTER_SHIFT) & (fp.low >> BLOOMFILTER_SHIFT)) & BLOOMFILTER_MASK

    def _positions(self, fp):
        return (h % self._nbits for h in (self.hash1(fp), self.hash2(fp), self.hash3(fp)))

    def might_contain(self, fp):
        """True if ``fp`` may have been added; False means it surely was not."""
        return all(self._bitmap.get(pos) for pos in self._positions(fp))

    def set(self, fps, bitmap):
        """Add every fingerprint whose position in ``bitmap`` is not yet set."""
        for i, fp in enumerate(fps):
            if bitmap.get(i):
                continue
            for pos in self._positions(fp):
                self._bitmap.set(pos)

    def get(self, fps, bitmap, db):
        """Mark in ``bitmap`` the unmarked fingerprints found in ``db``.

        The filter is consulted first and the database only on a possible hit.
        Returns the number of newly marked positions.
        """
        found = 0
        for i, fp in enumerate(fps):
            if bitmap.get(i) or not self.might_contain(fp):
                continue
            try:
                db.get(fp)
            except KeyError:
                continue
            bitmap.set(i)
            found += 1
        return found