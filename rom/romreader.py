import hashlib
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional
from PIL import Image
from gift.textcodec import decode_name
from rom.lz77util import decompress_lz77
from rom.romdatabase import GameFamily, NameTableInfo, RomDatabase, RomVersion
from rom.romerrors import IdentificationFailed, OffsetOutOfRange, RomSizeInvalid, TileSizeInvalid
from rom.tileutil import RGB, TILE_BYTES_4BPP, compose_tilemap, decode_font_2bpp, decode_tiles_4bpp, font_palette, font_sheet_bytes, indexed_image, parse_palette, parse_tilemap

MIN_ROM_SIZE = 1048576
ROM_BASE = 0x08000000
ROM_POINTER_MAX = 0x09FFFFFF
TITLE_OFFSET = 0xA0
CODE_OFFSET = 0xAC
EMERALD_FAMILY = 'Emerald'
FONT_MAIN = 3
FONT_ID = 1
FONT_CHARS = 512
FONT_CHAR_W = 8
FONT_CHAR_H = 16
FONT_SOURCE_COLUMNS = 2
GLYPH_WIDTHS_SIZE = 512
DEFAULT_GLYPH_WIDTH = 6
ICON_SIZE = 32
ICON_PALETTE_COUNT = 3
WONDERCARD_ENTRY_SIZE = 16
WONDERCARD_TILES_WIDE = 30
WONDERCARD_TILES_HIGH = 20
TEXT_PALETTE_INDEX = 3

@dataclass
class WonderCardGraphics:
    index: int
    tileset: int
    tilemap: int
    palette: int

    @property
    def valid(self) -> bool:
        return bool(self.tileset and self.tilemap and self.palette)

class RomReader:

    def __init__(self, data: bytes, version: RomVersion, family: Optional[GameFamily], database: RomDatabase, path: Optional[Path]=None):
        self.data = bytes(data)
        self.version = version
        self.family = family
        self.database = database
        self.path = path
        self.font_offsets: Dict[int, int] = {}
        self.width_offsets: Dict[int, int] = {}
        self._name_cache: Dict[str, Dict[int, str]] = {'item': {}, 'pokemon': {}, 'move': {}}
        self._font_cache: Dict[int, Image.Image] = {}
        self._icon_cache: Dict[int, Image.Image] = {}
        self._resolve_fonts()

    @classmethod
    def load(cls, data: bytes, database: RomDatabase, path: Optional[Path]=None) -> 'RomReader':
        if len(data) < MIN_ROM_SIZE:
            raise RomSizeInvalid(f'ROM too small: {len(data):,} bytes (minimum {MIN_ROM_SIZE:,})')
        md5 = hashlib.md5(data).hexdigest()
        version = database.identify(md5)
        if version is None:
            raise IdentificationFailed(f'Unknown ROM (MD5: {md5}). Supported ROMs: FireRed, LeafGreen, Emerald')
        reader = cls(data, version, database.get_game_family(version.game_family), database, path)
        print(f'[RomReader] Identified {version.name} ({version.code}), family {version.game_family}')
        return reader

    @property
    def version_name(self) -> str:
        return self.version.name

    @property
    def is_emerald(self) -> bool:
        return self.version.game_family == EMERALD_FAMILY

    @property
    def has_name_tables(self) -> bool:
        return self.version.has_name_tables

    @property
    def font_offset(self) -> int:
        return self.font_offsets.get(FONT_MAIN, 0)

    def _resolve_fonts(self):
        indices = [FONT_MAIN, FONT_ID] if self.is_emerald else [FONT_MAIN]
        for index in indices:
            offset = self.database.resolve_glyph_offset(self.version, index)
            if offset is None:
                continue
            self.font_offsets[index] = offset
            widths = self.database.resolve_font_width_table_offset(self.version, index)
            if widths is not None:
                self.width_offsets[index] = widths
        if self.font_offsets:
            fonts = ', '.join((f'{i}@0x{o:X}' for i, o in sorted(self.font_offsets.items())))
            print(f'[RomReader] Fonts: {fonts}')

    def read_u8(self, offset: int) -> int:
        if offset < 0 or offset >= len(self.data):
            return 0
        return self.data[offset]

    def read_u16(self, offset: int) -> int:
        if offset < 0 or offset + 1 >= len(self.data):
            return 0
        return struct.unpack_from('<H', self.data, offset)[0]

    def read_u32(self, offset: int) -> int:
        if offset < 0 or offset + 3 >= len(self.data):
            return 0
        return struct.unpack_from('<I', self.data, offset)[0]

    def read_bytes(self, offset: int, length: int) -> bytes:
        if offset < 0 or length < 0 or offset + length > len(self.data):
            return b''
        return self.data[offset:offset + length]

    def read_pointer(self, offset: int) -> int:
        ptr = self.read_u32(offset)
        if ROM_BASE <= ptr <= ROM_POINTER_MAX:
            return ptr - ROM_BASE
        return 0

    def _require(self, offset: int, length: int, what: str) -> bytes:
        chunk = self.read_bytes(offset, length)
        if len(chunk) != length:
            raise OffsetOutOfRange(f'{what} at 0x{offset:X} (+{length}) is outside the ROM ({len(self.data):,} bytes)')
        return chunk

    def game_title(self) -> str:
        return self.read_bytes(TITLE_OFFSET, 12).decode('latin-1').rstrip('\x00').strip()

    def game_code(self) -> str:
        return self.read_bytes(CODE_OFFSET, 4).decode('latin-1')

    def get_std_palette_offset(self, index: int) -> int:
        if 0 <= index < len(self.version.stdpal_offsets):
            return self.version.stdpal_offsets[index]
        return 0

    def extract_palette(self, offset: int, count: int=16) -> List[RGB]:
        return parse_palette(self._require(offset, count * 2, 'Palette'), count)

    def text_palette(self) -> Optional[List[RGB]]:
        offset = self.get_std_palette_offset(TEXT_PALETTE_INDEX)
        return self.extract_palette(offset) if offset else None

    def extract_tile_4bpp(self, offset: int, palette: List[RGB], width: int, height: int, transparent: bool=True) -> Image.Image:
        if width % 8 or height % 8:
            raise TileSizeInvalid(f'Tile image size must be a multiple of 8, got {width}x{height}')
        data = self._require(offset, width * height // 2, '4bpp graphics')
        return indexed_image(width, height, decode_tiles_4bpp(data, width, height), palette, 0 if transparent else None)

    def extract_tileset_4bpp(self, offset: int, tile_count: int, palette: List[RGB], tiles_per_row: int=16) -> Image.Image:
        rows = (tile_count + tiles_per_row - 1) // tiles_per_row
        data = self._require(offset, tile_count * TILE_BYTES_4BPP, 'Tileset')
        data += bytes(rows * tiles_per_row * TILE_BYTES_4BPP - len(data))
        width = tiles_per_row * 8
        height = rows * 8
        return indexed_image(width, height, decode_tiles_4bpp(data, width, height), palette)

    def decompress_lz77(self, offset: int) -> bytes:
        if offset < 0 or offset + 4 > len(self.data):
            raise OffsetOutOfRange(f'LZ77 data at 0x{offset:X} is outside the ROM')
        return decompress_lz77(self.data, offset)

    def extract_font_2bpp(self, offset: int, num_chars: int=FONT_CHARS, char_w: int=FONT_CHAR_W, char_h: int=FONT_CHAR_H, source_tile_columns: int=FONT_SOURCE_COLUMNS) -> Image.Image:
        data = self._require(offset, font_sheet_bytes(num_chars, char_w, char_h), 'Font')
        width, height, pixels = decode_font_2bpp(data, num_chars, char_w, char_h, source_tile_columns)
        img = indexed_image(width, height, pixels, font_palette())
        print(f'[RomReader] Extracted 2bpp font: {num_chars} chars, {width}x{height}px')
        return img

    def extract_font_by_index(self, index: int) -> Optional[Image.Image]:
        offset = self.font_offsets.get(index, 0)
        if not offset:
            print(f'[RomReader] WARNING: font index {index} not available for {self.version.name}')
            return None
        if index not in self._font_cache:
            self._font_cache[index] = self.extract_font_2bpp(offset)
        return self._font_cache[index]

    def extract_font(self) -> Optional[Image.Image]:
        return self.extract_font_by_index(FONT_MAIN)

    def get_glyph_widths(self, font_index: int=FONT_MAIN) -> bytes:
        offset = self.width_offsets.get(font_index, 0)
        widths = self.read_bytes(offset, GLYPH_WIDTHS_SIZE) if offset else b''
        if len(widths) != GLYPH_WIDTHS_SIZE:
            return bytes([DEFAULT_GLYPH_WIDTH] * GLYPH_WIDTHS_SIZE)
        return widths

    def icon_index_for_species(self, species: int) -> Optional[int]:
        if species == 0:
            return None
        limit = self.family.icon_species_limit if self.family else 412
        if species > limit:
            return self.family.invalid_icon if self.family else 0
        return species

    def extract_pokemon_icon(self, icon_index: int) -> Optional[Image.Image]:
        sprites = self.version.sprites
        if not sprites.has_icons:
            return None
        if icon_index in self._icon_cache:
            return self._icon_cache[icon_index]
        ptr = self.read_u32(sprites.icon_sprites + icon_index * 4)
        if not ROM_BASE <= ptr <= ROM_POINTER_MAX:
            raise OffsetOutOfRange(f'Icon pointer 0x{ptr:08X} for index {icon_index} is not a ROM address')
        palette_index = self.read_u8(sprites.icon_palette_indices + icon_index)
        if palette_index >= ICON_PALETTE_COUNT:
            palette_index = 0
        palette = self.extract_palette(sprites.icon_palettes + palette_index * 32)
        icon = self.extract_tile_4bpp(ptr - ROM_BASE, palette, ICON_SIZE, ICON_SIZE)
        self._icon_cache[icon_index] = icon
        return icon

    def extract_species_icon(self, species: int) -> Optional[Image.Image]:
        icon_index = self.icon_index_for_species(species)
        if icon_index is None:
            return None
        return self.extract_pokemon_icon(icon_index)

    def load_wonder_card_entry(self, index: int) -> WonderCardGraphics:
        if not 0 <= index < self.version.wondercard_count or not self.version.wondercard_table:
            raise OffsetOutOfRange(f'Gift card background {index} not available (count {self.version.wondercard_count})')
        entry = self.version.wondercard_table + index * WONDERCARD_ENTRY_SIZE
        return WonderCardGraphics(index=index, tileset=self.read_pointer(entry), tilemap=self.read_pointer(entry + 4), palette=self.read_pointer(entry + 8))

    def render_wonder_card_background(self, index: int) -> Image.Image:
        entry = self.load_wonder_card_entry(index)
        if not entry.valid:
            raise OffsetOutOfRange(f'Gift card background {index} has an invalid graphics entry')
        tileset = self.decompress_lz77(entry.tileset)
        tilemap = parse_tilemap(self.decompress_lz77(entry.tilemap), WONDERCARD_TILES_WIDE * WONDERCARD_TILES_HIGH)
        palette = self.extract_palette(entry.palette)
        pixels = compose_tilemap(tileset, tilemap, WONDERCARD_TILES_WIDE, WONDERCARD_TILES_HIGH)
        return indexed_image(WONDERCARD_TILES_WIDE * 8, WONDERCARD_TILES_HIGH * 8, pixels, palette, None)

    def _lookup_name(self, kind: str, table: Optional[NameTableInfo], index: int, length: int) -> str:
        if table is None or index < 0 or index >= table.count:
            return ''
        cache = self._name_cache[kind]
        if index not in cache:
            raw = self.read_bytes(table.offset + index * table.entry_size, length)
            cache[index] = decode_name(raw) if raw else ''
        return cache[index]

    def get_item_name(self, item_id: int) -> str:
        table = self.version.item_table
        if table is None:
            return ''
        name = self._lookup_name('item', table, item_id, table.name_length)
        return name.upper().replace(' ', '').replace('.', '')

    def get_species_name(self, species: int) -> str:
        table = self.version.pokemon_table
        return self._lookup_name('pokemon', table, species, table.entry_size if table else 0)

    def get_move_name(self, move_id: int) -> str:
        table = self.version.move_table
        return self._lookup_name('move', table, move_id, table.entry_size if table else 0)
