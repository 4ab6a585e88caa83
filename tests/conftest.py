import hashlib
import os
import struct
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from gift.textcodec import encode_text
from rom.lz77util import compress_lz77
from rom.romdatabase import RomDatabase
from rom.romreader import MIN_ROM_SIZE, RomReader
from save.gametype import GameType
from save.savefile import CHECKSUM_OFFSET, GAME_CODE_OFFSET, SAVE_FILE_SIZE, SAVE_INDEX_OFFSET, SECTION_ID_OFFSET, SECTION_SIGNATURE, SECTION_SIZE, SECTIONS_PER_SLOT, SECURITY_KEY_OFFSET, SIGNATURE_OFFSET, SLOT_SIZE, compute_section_checksum, section_checksum_length

# Synthetic ROM layout
ICON_TABLE = 0x1000
ICON_PALETTES = 0x2000
ICON_PALETTE_INDICES = 0x3000
ICON_GRAPHICS = 0x4000
SPECIES_NAMES = 0x5000
MOVE_NAMES = 0x6000
ITEM_NAMES = 0x7000
WONDERCARD_TABLE = 0x8000
WONDERCARD_TILESET = 0x9000
WONDERCARD_TILEMAP = 0x9800
WONDERCARD_PALETTE = 0xA000
FONT_GRAPHICS = 0xB000


def make_crc_table():
    table = bytearray()
    for i in range(256):
        c = i
        for _ in range(8):
            c = (c >> 1) ^ 0x8408 if c & 1 else c >> 1
        table += struct.pack('<H', c)
    return bytes(table)


def fix_checksums(data, game_type):
    for slot in range(2):
        for physical in range(SECTIONS_PER_SLOT):
            base = slot * SLOT_SIZE + physical * SECTION_SIZE
            logical = struct.unpack_from('<H', data, base + SECTION_ID_OFFSET)[0]
            length = section_checksum_length(logical, game_type)
            checksum = compute_section_checksum(bytes(data[base:base + SECTION_SIZE]), length)
            struct.pack_into('<H', data, base + CHECKSUM_OFFSET, checksum)
    return data


def build_save(game_type=GameType.FIRERED_LEAFGREEN, counters=(5, 4), rotations=(0, 3)):
    data = bytearray(SAVE_FILE_SIZE)
    for slot in range(2):
        for physical in range(SECTIONS_PER_SLOT):
            logical = (physical + rotations[slot]) % SECTIONS_PER_SLOT
            base = slot * SLOT_SIZE + physical * SECTION_SIZE
            struct.pack_into('<H', data, base + SECTION_ID_OFFSET, logical)
            struct.pack_into('<I', data, base + SIGNATURE_OFFSET, SECTION_SIGNATURE)
            struct.pack_into('<I', data, base + SAVE_INDEX_OFFSET, counters[slot])
            if logical == 0:
                if game_type == GameType.FIRERED_LEAFGREEN:
                    struct.pack_into('<I', data, base + GAME_CODE_OFFSET, 1)
                elif game_type == GameType.EMERALD:
                    struct.pack_into('<I', data, base + SECURITY_KEY_OFFSET, 0x5A5A1234)
    return fix_checksums(data, game_type)


@pytest.fixture
def crc_table():
    return make_crc_table()


@pytest.fixture
def save_builder():
    return build_save


@pytest.fixture
def checksum_fixer():
    return fix_checksums


def _write_name(rom, offset, name, length):
    rom[offset:offset + length] = encode_text(name, length)
    if len(name) < length:
        rom[offset + len(name)] = 0xFF


def build_rom():
    rom = bytearray(MIN_ROM_SIZE)
    rom[0xA0:0xAC] = b'POKEMON FIRE'
    rom[0xAC:0xB0] = b'BPRE'

    # icon 0 is blank, icon 1 is solid color 1 drawn with palette 0
    struct.pack_into('<I', rom, ICON_TABLE, 0x08000000 + ICON_GRAPHICS + 0x200)
    struct.pack_into('<I', rom, ICON_TABLE + 4, 0x08000000 + ICON_GRAPHICS)
    rom[ICON_GRAPHICS:ICON_GRAPHICS + 0x200] = b'\x11' * 0x200
    struct.pack_into('<H', rom, ICON_PALETTES + 2, 0x001F)

    _write_name(rom, SPECIES_NAMES + 11, 'BULBASAUR', 11)
    _write_name(rom, MOVE_NAMES + 13, 'Pound', 13)
    _write_name(rom, MOVE_NAMES + 26, 'Karate Chop', 13)
    _write_name(rom, ITEM_NAMES + 44, 'Master Ball', 14)

    tileset = compress_lz77(b'\x22' * 32)
    tilemap = compress_lz77(bytes(30 * 20 * 2))
    rom[WONDERCARD_TILESET:WONDERCARD_TILESET + len(tileset)] = tileset
    rom[WONDERCARD_TILEMAP:WONDERCARD_TILEMAP + len(tilemap)] = tilemap
    struct.pack_into('<H', rom, WONDERCARD_PALETTE + 4, 0x7C00)
    struct.pack_into('<III', rom, WONDERCARD_TABLE, 0x08000000 + WONDERCARD_TILESET, 0x08000000 + WONDERCARD_TILEMAP, 0x08000000 + WONDERCARD_PALETTE)
    return bytes(rom)


def build_database(md5):
    return RomDatabase.from_dict({
        'games': {
            'FRLG': {
                'invalid_icon': 0,
                'icon_species_limit': 412,
                'glyphs': {'latin': {3: {'offset': FONT_GRAPHICS}}},
                'versions': {
                    'FireRed_1.0': {
                        'code': 'BPRE',
                        'md5': md5,
                        'sprites': {'icon_sprites': ICON_TABLE, 'icon_palettes': ICON_PALETTES, 'icon_palette_indices': ICON_PALETTE_INDICES},
                        'wondercard_table': WONDERCARD_TABLE,
                        'name_tables': {
                            'items': {'offset': ITEM_NAMES, 'entry_size': 44, 'name_length': 14, 'count': 375},
                            'pokemon': {'offset': SPECIES_NAMES, 'entry_size': 11, 'count': 412},
                            'moves': {'offset': MOVE_NAMES, 'entry_size': 13, 'count': 355},
                        },
                    },
                },
            },
        },
    })


@pytest.fixture(scope='session')
def rom_bytes():
    return build_rom()


@pytest.fixture
def rom_database(rom_bytes):
    return build_database(hashlib.md5(rom_bytes).hexdigest())


@pytest.fixture
def rom_reader(rom_bytes, rom_database):
    return RomReader.load(rom_bytes, rom_database)
