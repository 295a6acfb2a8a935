from dedupstore.bitmap import BitMap
from dedupstore.bloomfilter import BloomFilter
from dedupstore.chunkdb import ChunkDB, DBChunk
from dedupstore.fingerprint import Fingerprint


def test_hashes_take_low_32_bits():
    bloom = BloomFilter(1 << 16)
    fp = Fingerprint(0x1234567890ABCDEF, 0xFFFFFFFF00000001)
    assert bloom.hash1(fp) == 0x90ABCDEF
    assert bloom.hash2(fp) == 1


def test_hash3_combines_high_words():
    bloom = BloomFilter(1 << 16)
    fp = Fingerprint(0xFFFF000000000000, 0x0F0F000000000000)
    assert bloom.hash3(fp) == 0x0F0F0000


def test_empty_filter_contains_nothing():
    bloom = BloomFilter(1 << 16)
    assert bloom.might_contain(Fingerprint(1, 2)) is False


def test_set_then_might_contain():
    bloom = BloomFilter(1 << 16)
    fps = [Fingerprint(11, 22), Fingerprint(33, 44)]
    bloom.set(fps, BitMap(len(fps)))
    assert all(bloom.might_contain(fp) for fp in fps)


def test_set_skips_marked_positions():
    bloom = BloomFilter(1 << 16)
    fps = [Fingerprint(100, 200), Fingerprint(300, 400)]
    bitmap = BitMap(len(fps))
    bitmap.set(0)
    bloom.set(fps, bitmap)
    assert bloom.might_contain(fps[0]) is False
    assert bloom.might_contain(fps[1]) is True


def test_get_marks_only_stored(tmp_path):
    bloom = BloomFilter(1 << 16)
    stored = Fingerprint(5, 6)
    only_in_filter = Fingerprint(7, 8)
    absent = Fingerprint(9, 10)
    fps = [stored, only_in_filter, absent]
    bloom.set([stored, only_in_filter], BitMap(2))
    bitmap = BitMap(len(fps))
    with ChunkDB(tmp_path / "db") as db:
        db.put(stored, DBChunk(0, 0, 1, 1))
        found = bloom.get(fps, bitmap, db)
    assert found == 1
    assert [bitmap.get(i) for i in range(len(fps))] == [True, False, False]


def test_get_leaves_marked_positions(tmp_path):
    bloom = BloomFilter(1 << 16)
    fps = [Fingerprint(1, 1)]
    bitmap = BitMap(1)
    bitmap.set(0)
    with ChunkDB(tmp_path / "db") as db:
        assert bloom.get(fps, bitmap, db) == 0
    assert bitmap.get(0) is True


def test_small_filter_wraps_positions():
    bloom = BloomFilter(0)
    fp = Fingerprint(0xFFFFFFFFFFFFFFFF, 0xFFFFFFFFFFFFFFFF)
    bloom.set([fp], BitMap(1))
    assert bloom.might_contain(fp) is True