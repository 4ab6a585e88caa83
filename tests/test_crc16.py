import pytest

from gift.crc16 import CRC_TABLE_SIZE, calculate_crc16, load_crc_table


def test_single_zero_byte(crc_table):
    assert calculate_crc16(b'\x00', crc_table) == 0xCF65


def test_empty_input_is_inverted_seed(crc_table):
    assert calculate_crc16(b'', crc_table) == 0xEEDE


def test_ascii_digits(crc_table):
    assert calculate_crc16(b'123456789', crc_table) == 0xBE75


def test_wrong_table_size_rejected():
    with pytest.raises(ValueError):
        calculate_crc16(b'\x00', bytes(100))


def test_load_crc_table(tmp_path, crc_table):
    path = tmp_path / 'tab.bin'
    path.write_bytes(crc_table)
    assert load_crc_table(path) == crc_table
    assert len(crc_table) == CRC_TABLE_SIZE


def test_load_crc_table_bad_size(tmp_path):
    path = tmp_path / 'tab.bin'
    path.write_bytes(bytes(511))
    with pytest.raises(ValueError):
        load_crc_table(path)
