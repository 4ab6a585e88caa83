import pytest

from rom.lz77util import compress_lz77, decompress_lz77, lz77_declared_size
from rom.romerrors import CompressionFormatError


def test_literal_only_block():
    data = bytes([0x10, 0x04, 0x00, 0x00, 0x00, 0x01, 0x02, 0x03, 0x04])
    assert decompress_lz77(data) == b'\x01\x02\x03\x04'


def test_overlapping_back_reference():
    # two literals then a 6 byte copy from two bytes back
    data = bytes([0x10, 0x08, 0x00, 0x00, 0x20, 0xAA, 0xBB, 0x30, 0x01])
    assert decompress_lz77(data) == bytes([0xAA, 0xBB] * 4)


def test_decompress_at_offset():
    data = b'\xff\xff' + bytes([0x10, 0x01, 0x00, 0x00, 0x00, 0x7E])
    assert decompress_lz77(data, 2) == b'\x7e'


def test_bad_magic():
    with pytest.raises(CompressionFormatError):
        decompress_lz77(bytes([0x11, 0x04, 0x00, 0x00, 0x00]))


def test_zero_size_rejected():
    with pytest.raises(CompressionFormatError):
        lz77_declared_size(bytes([0x10, 0, 0, 0]))


def test_truncated_stream():
    with pytest.raises(CompressionFormatError, match='Unexpected end'):
        decompress_lz77(bytes([0x10, 0x08, 0x00, 0x00, 0x00, 0x01]))


def test_invalid_displacement():
    with pytest.raises(CompressionFormatError, match='displacement'):
        decompress_lz77(bytes([0x10, 0x04, 0x00, 0x00, 0x80, 0x00, 0x05]))


def test_compressor_output_decompresses():
    payload = bytes(range(64)) * 8 + b'\x00' * 300
    packed = compress_lz77(payload)
    assert len(packed) < len(payload)
    assert decompress_lz77(packed) == payload


def test_compress_empty_rejected():
    with pytest.raises(ValueError):
        compress_lz77(b'')
