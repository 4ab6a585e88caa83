import struct
from pathlib import Path
from typing import Union

CRC_TABLE_SIZE = 512
CRC_SEED = 4385

def calculate_crc16(data: bytes, table: bytes) -> int:
    if len(table) != CRC_TABLE_SIZE:
        raise ValueError(f'CRC table must be {CRC_TABLE_SIZE} bytes, got {len(table)}')
    crc = CRC_SEED
    for byte in data:
        index = (crc ^ byte) & 255
        crc = struct.unpack_from('<H', table, index * 2)[0] ^ crc >> 8
    return ~crc & 65535

def load_crc_table(path: Union[str, Path]) -> bytes:
    path = Path(path)
    table = path.read_bytes()
    if len(table) != CRC_TABLE_SIZE:
        raise ValueError(f'Invalid CRC table {path.name}: expected {CRC_TABLE_SIZE} bytes, got {len(table)}')
    return table
