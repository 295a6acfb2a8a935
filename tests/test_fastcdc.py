import random

import pytest

from dedupstore.fastcdc import (
    AVERAGE_MAX,
    AVERAGE_MIN,
    MAXIMUM_MAX,
    MAXIMUM_MIN,
    MINIMUM_MAX,
    MINIMUM_MIN,
    Chunk,
    FastCDC,
    cut,
    normal_size,
)
from dedupstore.fingerprint import Fingerprint


def _data(size, seed=7):
    return random.Random(seed).randbytes(size)


@pytest.fixture
def cdc():
    return FastCDC(256, 1024, 4096)


def _assert_contiguous(chunks, total, maxsize, minsize):
    expected = 0
    for chunk in chunks:
        assert chunk.offset == expected
        assert 0 < chunk.length <= maxsize
        expected += chunk.length
    assert expected == total
    assert all(chunk.length >= minsize for chunk in chunks[:-1])


def test_normal_size_capped_by_length():
    assert normal_size(64, 256, 10) == 10


def test_normal_size_offset_capped_by_average():
    assert normal_size(100, 50, 1000) == 0


def test_cut_short_data_returns_its_length():
    assert cut(b"abc", 64, 1024, 128, 0x1FF, 0x7F) == 3


def test_cut_zero_mask_cuts_right_after_minimum():
    assert cut(_data(2000), 64, 1024, 512, 0, 0) == 65


def test_cut_unreachable_mask_cuts_at_maximum():
    data = _data(5000)
    assert cut(data, 64, 1024, 512, 0xFFFFFFFF, 0xFFFFFFFF) == 1024
    assert cut(data[:700], 64, 1024, 512, 0xFFFFFFFF, 0xFFFFFFFF) == 700


def test_sizes_are_clamped():
    low = FastCDC(1, 1, 1)
    assert (low.minsize, low.avgsize, low.maxsize) == (MINIMUM_MIN, AVERAGE_MIN, MAXIMUM_MIN)
    high = FastCDC(1 << 40, 1 << 40, 1 << 40)
    assert (high.minsize, high.avgsize, high.maxsize) == (MINIMUM_MAX, AVERAGE_MAX, MAXIMUM_MAX)


def test_masks_follow_average_size():
    cdc = FastCDC(64 * 1024, 256 * 1024, 512 * 1024)
    assert cdc.mask_s == (cdc.mask_l << 2) | 0b11
    assert cdc.mask_s == 0x7FFFF


def test_invalid_average_rejected():
    with pytest.raises(ValueError):
        FastCDC(64, 0, 1024)


def test_chunking_with_end_covers_everything(cdc):
    data = _data(64 * 1024)
    chunks = cdc.chunking("mem", data, True)
    _assert_contiguous(chunks, len(data), cdc.maxsize, cdc.minsize)
    assert cdc.pos == len(data)
    for chunk in chunks:
        piece = data[chunk.offset:chunk.offset + chunk.length]
        assert chunk.fingerprint == Fingerprint.of(piece, 0)
        assert chunk.path == "mem"


def test_chunking_without_end_leaves_tail(cdc):
    data = _data(20000)
    chunks = cdc.chunking("mem", data, False)
    consumed = sum(chunk.length for chunk in chunks)
    assert len(data) - consumed < cdc.maxsize
    assert cdc.pos == consumed
    cdc.clear()
    assert cdc.pos == 0


def test_chunking_is_deterministic(cdc):
    data = _data(30000)
    first = [(c.offset, c.length, c.fingerprint) for c in cdc.chunking("a", data, True)]
    cdc.clear()
    second = [(c.offset, c.length, c.fingerprint) for c in cdc.chunking("a", data, True)]
    assert first == second


def test_boundaries_survive_prefix_insertion(cdc):
    data = _data(64 * 1024)
    original = {c.fingerprint for c in cdc.chunking("a", data, True)}
    cdc.clear()
    shifted = {c.fingerprint for c in cdc.chunking("b", _data(100, seed=3) + data, True)}
    assert len(original & shifted) >= len(original) // 2


def test_parse_matches_in_memory_chunking(tmp_path, cdc):
    data = _data(50000)
    path = tmp_path / "input.bin"
    path.write_bytes(data)
    chunks = cdc.parse(path)
    _assert_contiguous(chunks, len(data), cdc.maxsize, cdc.minsize)
    assert cdc.pos == len(data)
    assert chunks[0].path == str(path)
    expected = FastCDC(256, 1024, 4096).chunking(path, data, True)
    assert [(c.offset, c.fingerprint) for c in chunks] == [
        (c.offset, c.fingerprint) for c in expected
    ]


def test_parse_file_of_exactly_one_buffer(tmp_path, cdc):
    data = _data(cdc.maxsize * 4)
    path = tmp_path / "exact.bin"
    path.write_bytes(data)
    chunks = cdc.parse(path)
    _assert_contiguous(chunks, len(data), cdc.maxsize, cdc.minsize)


def test_parse_empty_file(tmp_path, cdc):
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    assert cdc.parse(path) == []
    assert cdc.pos == 0


def test_parse_missing_file_raises(tmp_path, cdc):
    with pytest.raises(FileNotFoundError):
        cdc.parse(tmp_path / "missing.bin")


def test_chunk_reference_counting():
    chunk = Chunk("f", 0, 10)
    chunk.add_ref()
    chunk.add_ref()
    chunk.sub_ref()
    assert chunk.refcnt == 1