import struct

import pytest

from gift.crc16 import calculate_crc16
from gift.giftcard import GIFT_CARD_TOTAL_SIZE, RAM_SCRIPT_MAGIC, SCRIPT_PAYLOAD_SIZE, GiftCard, encode_gift_card
from save.gametype import GameType
from save.saveerrors import ChecksumMismatch, SaveSizeInvalid, UnsupportedGame
from save.savefile import GIFT_LAYOUTS, GIFT_SECTION_ID, SECTION_SIZE, SLOT_SIZE, SaveFile, compute_section_checksum, section_checksum_length


def test_checksum_folds_upper_half():
    section = struct.pack('<II', 0x00010002, 0x00030004) + bytes(SECTION_SIZE - 8)
    assert compute_section_checksum(section, 8) == 0x000A


def test_checksum_lengths():
    assert section_checksum_length(0, GameType.FIRERED_LEAFGREEN) == 0xF24
    assert section_checksum_length(0, GameType.EMERALD) == 0xF2C
    assert section_checksum_length(4, GameType.RUBY_SAPPHIRE) == 0xC40
    assert section_checksum_length(13, GameType.EMERALD) == 0x7D0
    assert section_checksum_length(7, GameType.EMERALD) == 0xF80


def test_wrong_size_rejected():
    with pytest.raises(SaveSizeInvalid):
        SaveFile(bytes(1000))


def test_detects_frlg(save_builder):
    save = SaveFile(save_builder())
    assert save.game_type == GameType.FIRERED_LEAFGREEN
    assert save.active_slot == 0
    assert save.validate_checksums()
    assert save.slots[1].valid


def test_detects_emerald(save_builder):
    save = SaveFile(save_builder(GameType.EMERALD))
    assert save.detect_game_type() == GameType.EMERALD


def test_higher_counter_wins(save_builder):
    save = SaveFile(save_builder(counters=(2, 9)))
    assert save.active_slot == 1


def test_corrupt_slot_loses_despite_counter(save_builder):
    data = save_builder(counters=(9, 2))
    data[0x10] ^= 0xFF
    save = SaveFile(data)
    assert save.active_slot == 1
    assert not save.slots[0].valid


def test_sections_are_found_through_rotation(save_builder):
    save = SaveFile(save_builder(counters=(1, 2), rotations=(0, 3)))
    # slot 1 physical n holds logical (n + 3) % 14
    assert save.find_section_by_logical_id(GIFT_SECTION_ID) == 1
    assert save.section_offset(GIFT_SECTION_ID) == SLOT_SIZE + SECTION_SIZE


def test_both_slots_corrupt_falls_back_to_counter(save_builder):
    data = save_builder(counters=(3, 7))
    data[0x10] ^= 0xFF
    data[SLOT_SIZE + 0x10] ^= 0xFF
    save = SaveFile(data)
    assert save.detect_active_slot() == 1
    assert not save.slots[0].valid and not save.slots[1].valid


def test_slot_info(save_builder):
    save = SaveFile(save_builder(counters=(5, 4)))
    info = save.slot_info(1)
    assert info.slot == 1
    assert info.save_index == 4
    assert info.valid
    assert info.game_type == GameType.FIRERED_LEAFGREEN


def test_recompute_section_checksum(save_builder):
    save = SaveFile(save_builder())
    save.data[save.section_offset(2) + 0x40] = 0x7E
    assert not save.validate_checksums()
    save.recompute_section_checksum(2)
    assert save.validate_checksums()


def test_verify_active_slot_reports_bad_sections(save_builder):
    save = SaveFile(save_builder())
    save.data[save.section_offset(1) + 0x20] ^= 0x01
    with pytest.raises(ChecksumMismatch) as exc:
        save.verify_active_slot()
    assert exc.value.bad_sections == [1]


def test_inject_card_and_script(save_builder, crc_table):
    save = SaveFile(save_builder())
    card = GiftCard(event_id=1, icon=2, title='TEST')
    script = bytes([0, 1, 2, 3, 0x02]) + bytes(SCRIPT_PAYLOAD_SIZE - 5)
    save.inject_gift_card(card, crc_table, script_data=script)
    assert save.validate_checksums()
    assert save.has_wonder_card()
    assert save.extract_gift_card().title.rstrip() == 'TEST'
    raw = save.extract_gift_card_raw()
    assert len(raw) == GIFT_CARD_TOTAL_SIZE
    assert struct.unpack_from('<H', raw, 0)[0] == calculate_crc16(encode_gift_card(card), crc_table)
    stored_script = save.extract_script()
    assert stored_script[0] == RAM_SCRIPT_MAGIC
    assert stored_script[4] == 0x02
    layout = GIFT_LAYOUTS[GameType.FIRERED_LEAFGREEN]
    base = save.section_offset(GIFT_SECTION_ID)
    assert struct.unpack_from('<H', save.data, base + layout.metadata + 6)[0] == 2


def test_inject_raw_record(save_builder, crc_table):
    save = SaveFile(save_builder(GameType.EMERALD))
    payload = encode_gift_card(GiftCard(event_id=4, icon=5, title='RAW'))
    save.inject_gift_card(None, crc_table, raw_card_data=b'\x00\x00\x00\x00' + payload)
    assert save.extract_gift_card().title.rstrip() == 'RAW'
    assert save.validate_checksums()


def test_inject_bad_script_size(save_builder, crc_table):
    save = SaveFile(save_builder())
    with pytest.raises(ValueError):
        save.inject_gift_card(GiftCard(title='X'), crc_table, script_data=bytes(10))


def test_inject_requires_card(save_builder, crc_table):
    save = SaveFile(save_builder())
    with pytest.raises(ValueError):
        save.inject_gift_card(None, crc_table, raw_card_data=bytes(5))


@pytest.mark.parametrize('game_type', [GameType.FIRERED_LEAFGREEN, GameType.EMERALD])
def test_mystery_gift_flag(save_builder, game_type):
    save = SaveFile(save_builder(game_type))
    assert not save.is_mystery_gift_enabled()
    save.enable_mystery_gift()
    assert save.is_mystery_gift_enabled()
    assert save.validate_checksums()
    save.set_mystery_gift_enabled(False)
    assert not save.is_mystery_gift_enabled()


def test_ruby_sapphire_has_no_gift_access(save_builder, crc_table):
    save = SaveFile(save_builder(GameType.RUBY_SAPPHIRE))
    assert save.game_type == GameType.RUBY_SAPPHIRE
    assert not save.has_wonder_card()
    with pytest.raises(UnsupportedGame):
        save.extract_gift_card()
    with pytest.raises(UnsupportedGame):
        save.inject_gift_card(GiftCard(title='X'), crc_table)


def test_save_to_file_keeps_backup(tmp_path, save_builder):
    path = tmp_path / 'game.sav'
    path.write_bytes(bytes(save_builder()))
    save = SaveFile.load_file(path)
    original = path.read_bytes()
    save.enable_mystery_gift()
    save.save_to_file()
    assert (tmp_path / 'game.bak').read_bytes() == original
    reloaded = SaveFile.load_file(path)
    assert reloaded.is_mystery_gift_enabled()
    assert not (tmp_path / 'game.sav.tmp').exists()


def test_save_to_file_needs_path(save_builder):
    with pytest.raises(ValueError):
        SaveFile(save_builder()).save_to_file()
