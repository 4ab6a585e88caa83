from typing import Dict, List
from rom.romerrors import CompressionFormatError

LZ77_MAGIC = 16
LZ77_MAX_SIZE = 1048576
LZ77_WINDOW = 4096
LZ77_MIN_MATCH = 3
LZ77_MAX_MATCH = 18

def lz77_declared_size(data: bytes, offset: int=0) -> int:
    if offset < 0 or offset + 4 > len(data):
        raise CompressionFormatError(f'LZ77 header at 0x{offset:X} is past end of data')
    if data[offset] != LZ77_MAGIC:
        raise CompressionFormatError(f'Not LZ77 data at 0x{offset:X} (header 0x{data[offset]:02X})')
    size = data[offset + 1] | data[offset + 2] << 8 | data[offset + 3] << 16
    if size == 0 or size > LZ77_MAX_SIZE:
        raise CompressionFormatError(f'Invalid LZ77 decompressed size {size}')
    return size

def decompress_lz77(data: bytes, offset: int=0) -> bytes:
    size = lz77_declared_size(data, offset)
    src = offset + 4
    out = bytearray()
    while len(out) < size:
        if src >= len(data):
            raise CompressionFormatError('Unexpected end of compressed data')
        flags = data[src]
        src += 1
        for bit in range(8):
            if len(out) >= size:
                break
            if flags & 128 >> bit == 0:
                if src >= len(data):
                    raise CompressionFormatError('Unexpected end of compressed data')
                out.append(data[src])
                src += 1
                continue
            if src + 1 >= len(data):
                raise CompressionFormatError('Unexpected end of compressed data')
            b1 = data[src]
            b2 = data[src + 1]
            src += 2
            length = (b1 >> 4) + LZ77_MIN_MATCH
            copy_pos = len(out) - (((b1 & 15) << 8 | b2) + 1)
            if copy_pos < 0:
                raise CompressionFormatError('Invalid LZ77 displacement')
            for _ in range(length):
                if len(out) >= size:
                    break
                out.append(out[copy_pos])
                copy_pos += 1
    return bytes(out)

def compress_lz77(data: bytes) -> bytes:
    n = len(data)
    if n == 0 or n > LZ77_MAX_SIZE:
        raise ValueError(f'Cannot LZ77-compress {n} bytes')
    out = bytearray([LZ77_MAGIC, n & 255, n >> 8 & 255, n >> 16 & 255])
    positions: Dict[bytes, List[int]] = {}

    def remember(pos: int):
        if pos + LZ77_MIN_MATCH <= n:
            positions.setdefault(data[pos:pos + LZ77_MIN_MATCH], []).append(pos)

    def longest_match(pos: int):
        best_len, best_disp = (0, 0)
        for cand in reversed(positions.get(data[pos:pos + LZ77_MIN_MATCH], [])):
            disp = pos - cand
            if disp > LZ77_WINDOW:
                break
            if disp < 2:
                continue
            length = 0
            limit = min(LZ77_MAX_MATCH, n - pos)
            while length < limit and data[cand + length] == data[pos + length]:
                length += 1
            if length > best_len:
                best_len, best_disp = (length, disp)
                if length == LZ77_MAX_MATCH:
                    break
        return (best_len, best_disp)
    pos = 0
    while pos < n:
        flag_index = len(out)
        out.append(0)
        for bit in range(8):
            if pos >= n:
                break
            length, disp = longest_match(pos)
            if length >= LZ77_MIN_MATCH:
                out[flag_index] |= 128 >> bit
                d = disp - 1
                out.append(length - LZ77_MIN_MATCH << 4 | d >> 8)
                out.append(d & 255)
                for p in range(pos, pos + length):
                    remember(p)
                pos += length
            else:
                out.append(data[pos])
                remember(pos)
                pos += 1
    return bytes(out)
