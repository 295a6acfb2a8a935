import pytest

from dedupstore.bitmap import BitMap
from dedupstore.fingerprint import Fingerprint
from dedupstore.lru import FingerprintLRU


def fp(n):
    return Fingerprint(0, n)


def test_get_on_empty_cache_sets_nothing():
    lru = FingerprintLRU(4)
    bitmap = BitMap(3)
    assert lru.get([fp(1), fp(2), fp(3)], bitmap) == 0
    assert bitmap.words() == [0]


def test_put_then_get_marks_positions():
    lru = FingerprintLRU(4)
    lru.put([fp(1), fp(3)])
    bitmap = BitMap(3)
    assert lru.get([fp(1), fp(2), fp(3)], bitmap) == 2
    assert [bitmap.get(i) for i in range(3)] == [True, False, True]


def test_evicts_least_recently_put():
    lru = FingerprintLRU(2)
    lru.put([fp(1), fp(2), fp(3)])
    assert len(lru) == 2
    assert fp(1) not in lru
    assert fp(2) in lru and fp(3) in lru


def test_get_refreshes_recency():
    lru = FingerprintLRU(2)
    lru.put([fp(1), fp(2)])
    lru.get([fp(1)], BitMap(1))
    lru.put([fp(3)])
    assert fp(1) in lru
    assert fp(2) not in lru


def test_reinserting_does_not_grow_or_evict():
    lru = FingerprintLRU(2)
    lru.put([fp(1), fp(2)])
    lru.put([fp(1)])
    assert len(lru) == 2
    lru.put([fp(3)])
    assert fp(2) not in lru
    assert fp(1) in lru


def test_duplicates_in_one_batch():
    lru = FingerprintLRU(3)
    lru.put([fp(5), fp(5), fp(5)])
    assert len(lru) == 1


def test_size_never_exceeds_capacity():
    lru = FingerprintLRU(5)
    lru.put([fp(n) for n in range(50)])
    assert len(lru) == 5
    assert all(fp(n) in lru for n in range(45, 50))


def test_invalid_capacity():
    with pytest.raises(ValueError):
        FingerprintLRU(0)