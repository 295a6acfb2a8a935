"""A growable bit set stored as a list of 64-bit words."""

WORD_BITS = 64
_SHIFT = 6
_MASK = 0x3F
_WORD_MAX = (1 << WORD_BITS) - 1


class BitMap:
    """Bit set whose storage is a list of 64-bit words.

    The words themselves can be read and written directly, which is how a
    bitmap travels over the wire.
    """

    def __init__(self, size=0):
        if size < 0:
            raise ValueError(f"bitmap size must not be negative: {size}")
        self._words = [0] * ((size >> _SHIFT) + 1)

    def _word_index(self, idx):
        if idx < 0 or idx >= len(self._words):
            raise IndexError(f"word index {idx} out of range for {len(self._words)} words")
        return idx

    def _bit_position(self, n):
        if n < 0:
            raise IndexError(f"bit index must not be negative: {n}")
        return self._word_index(n >> _SHIFT), n & _MASK

    def set(self, n):
        """Set bit ``n``."""
        word, bit = self._bit_position(n)
        self._words[word] |= 1 << bit

    def get(self, n):
        """Return whether bit ``n`` is set."""
        word, bit = self._bit_position(n)
        return bool(self._words[word] >> bit & 1)

    def clear(self):
        """Drop all words; the bitmap becomes empty."""
        self._words.clear()

    def resize(self, length):
        """Truncate or zero-extend the bitmap to ``length`` words."""
        if length < 0:
            raise ValueError(f"bitmap length must not be negative: {length}")
        del self._words[length:]
        self._words.extend([0] * (length - len(self._words)))

    def __len__(self):
        return len(self._words)

    def set_word(self, idx, val):
        """Replace the whole word at ``idx``."""
        if not 0 <= val <= _WORD_MAX:
            raise ValueError(f"word value out of 64-bit range: {val}")
        self._words[self._word_index(idx)] = val

    def get_word(self, idx):
        """Return the whole word at ``idx``."""
        return self._words[self._word_index(idx)]

    def words(self):
        """Return a copy of the underlying words."""
        return list(self._words)

    def __repr__(self):
        return f"BitMap(words={self._words!r})"