import struct
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from PIL import Image
from rom.romerrors import TileSizeInvalid

TILE_SIZE = 8
TILE_BYTES_4BPP = 32
TILE_BYTES_2BPP = 16
FONT_OUTPUT_CHARS_PER_ROW = 32
FONT_PALETTE = [(144, 200, 255), (56, 56, 56), (216, 216, 216), (255, 255, 255)]

RGB = Tuple[int, int, int]

def gba_color_to_rgb(color: int) -> RGB:
    r = (color & 31) << 3
    g = (color >> 5 & 31) << 3
    b = (color >> 10 & 31) << 3
    return (r | r >> 5, g | g >> 5, b | b >> 5)

def parse_palette(data: bytes, count: int=16) -> List[RGB]:
    colors = []
    for i in range(count):
        if i * 2 + 2 > len(data):
            colors.append((0, 0, 0))
            continue
        colors.append(gba_color_to_rgb(struct.unpack_from('<H', data, i * 2)[0]))
    return colors

def flatten_palette(palette: Sequence[RGB], size: int=256) -> List[int]:
    flat = []
    for r, g, b in list(palette)[:size]:
        flat.extend((r, g, b))
    flat.extend([0] * (size * 3 - len(flat)))
    return flat

def indexed_image(width: int, height: int, pixels: Sequence[int], palette: Sequence[RGB], transparent_index: Optional[int]=0) -> Image.Image:
    img = Image.new('P', (width, height), 0)
    img.putpalette(flatten_palette(palette))
    img.putdata(list(pixels))
    if transparent_index is not None:
        img.info['transparency'] = transparent_index
    return img

def decode_tile_4bpp(data: bytes, offset: int=0) -> List[int]:
    pixels = []
    for b in data[offset:offset + TILE_BYTES_4BPP]:
        pixels.append(b & 15)
        pixels.append(b >> 4)
    return pixels

def decode_tiles_4bpp(data: bytes, width: int, height: int) -> List[int]:
    if width % TILE_SIZE or height % TILE_SIZE:
        raise TileSizeInvalid(f'Tile image size must be a multiple of 8, got {width}x{height}')
    tiles_x = width // TILE_SIZE
    pixels = [0] * (width * height)
    for tile in range(tiles_x * (height // TILE_SIZE)):
        tx = tile % tiles_x * TILE_SIZE
        ty = tile // tiles_x * TILE_SIZE
        for i, value in enumerate(decode_tile_4bpp(data, tile * TILE_BYTES_4BPP)):
            pixels[(ty + i // TILE_SIZE) * width + tx + i % TILE_SIZE] = value
    return pixels

def decode_2bpp_sheet(data: bytes, tile_columns: int, tile_rows: int) -> List[List[int]]:
    width = tile_columns * TILE_SIZE
    sheet = [[0] * width for _ in range(tile_rows * TILE_SIZE)]
    for y_tile in range(tile_rows):
        for x_tile in range(tile_columns):
            start = (y_tile * tile_columns + x_tile) * TILE_BYTES_2BPP
            x_off = x_tile * TILE_SIZE
            y_off = y_tile * TILE_SIZE
            for i in range(TILE_BYTES_2BPP):
                raw = data[start + i] if start + i < len(data) else 0
                x = x_off + (1 - i % 2) * 4
                row = sheet[y_off + i // 2]
                row[x] = raw >> 6 & 3
                row[x + 1] = raw >> 4 & 3
                row[x + 2] = raw >> 2 & 3
                row[x + 3] = raw & 3
    return sheet

def font_sheet_bytes(num_chars: int, char_w: int, char_h: int) -> int:
    return num_chars * (char_w // TILE_SIZE) * (char_h // TILE_SIZE) * TILE_BYTES_2BPP

def decode_font_2bpp(data: bytes, num_chars: int, char_w: int, char_h: int, source_tile_columns: int) -> Tuple[int, int, List[int]]:
    total_tiles = font_sheet_bytes(num_chars, char_w, char_h) // TILE_BYTES_2BPP
    sheet = decode_2bpp_sheet(data, source_tile_columns, total_tiles // source_tile_columns)
    source_h = len(sheet)
    source_w = len(sheet[0]) if sheet else 0
    source_chars_per_row = max(1, source_w // char_w)
    rows = (num_chars + FONT_OUTPUT_CHARS_PER_ROW - 1) // FONT_OUTPUT_CHARS_PER_ROW
    out_w = FONT_OUTPUT_CHARS_PER_ROW * char_w
    out_h = rows * char_h
    pixels = [0] * (out_w * out_h)
    for ch in range(num_chars):
        sx = ch % source_chars_per_row * char_w
        sy = ch // source_chars_per_row * char_h
        dx = ch % FONT_OUTPUT_CHARS_PER_ROW * char_w
        dy = ch // FONT_OUTPUT_CHARS_PER_ROW * char_h
        for py in range(char_h):
            if sy + py >= source_h:
                break
            src_row = sheet[sy + py]
            base = (dy + py) * out_w + dx
            for px in range(char_w):
                if sx + px < source_w:
                    value = src_row[sx + px]
                    pixels[base + px] = 0 if value == 3 else value
    return (out_w, out_h, pixels)

def font_palette() -> List[RGB]:
    return FONT_PALETTE + [(0, 0, 0)] * (256 - len(FONT_PALETTE))

@dataclass
class TilemapEntry:
    tile: int
    hflip: bool
    vflip: bool
    palette: int

    @classmethod
    def from_u16(cls, value: int) -> 'TilemapEntry':
        return cls(tile=value & 1023, hflip=bool(value & 1024), vflip=bool(value & 2048), palette=value >> 12 & 15)

def parse_tilemap(data: bytes, count: int) -> List[TilemapEntry]:
    count = min(count, len(data) // 2)
    return [TilemapEntry.from_u16(v) for v in struct.unpack_from(f'<{count}H', data, 0)]

def compose_tilemap(tileset: bytes, entries: Sequence[TilemapEntry], tiles_wide: int, tiles_high: int) -> List[int]:
    width = tiles_wide * TILE_SIZE
    pixels = [0] * (width * tiles_high * TILE_SIZE)
    num_tiles = len(tileset) // TILE_BYTES_4BPP
    for index, entry in enumerate(entries[:tiles_wide * tiles_high]):
        if entry.tile >= num_tiles:
            continue
        tile = decode_tile_4bpp(tileset, entry.tile * TILE_BYTES_4BPP)
        ox = index % tiles_wide * TILE_SIZE
        oy = index // tiles_wide * TILE_SIZE
        for y in range(TILE_SIZE):
            sy = TILE_SIZE - 1 - y if entry.vflip else y
            for x in range(TILE_SIZE):
                sx = TILE_SIZE - 1 - x if entry.hflip else x
                pixels[(oy + y) * width + ox + x] = tile[sy * TILE_SIZE + sx]
    return pixels
