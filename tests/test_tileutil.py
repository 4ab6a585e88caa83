import pytest

from rom.romerrors import TileSizeInvalid
from rom.tileutil import TilemapEntry, compose_tilemap, decode_tile_4bpp, decode_tiles_4bpp, gba_color_to_rgb, indexed_image, parse_palette


def test_color_expansion():
    assert gba_color_to_rgb(0x0000) == (0, 0, 0)
    assert gba_color_to_rgb(0x7FFF) == (255, 255, 255)
    assert gba_color_to_rgb(0x001F) == (255, 0, 0)
    assert gba_color_to_rgb(0x03E0) == (0, 255, 0)


def test_palette_pads_short_data():
    colors = parse_palette(b'\x1f\x00', 4)
    assert colors == [(255, 0, 0), (0, 0, 0), (0, 0, 0), (0, 0, 0)]


def test_low_nibble_is_left_pixel():
    pixels = decode_tile_4bpp(bytes([0x21]) + bytes(31))
    assert pixels[:3] == [1, 2, 0]


def test_zero_tile_uses_color_zero():
    palette = [(10, 20, 30)] + [(0, 0, 0)] * 15
    img = indexed_image(8, 8, decode_tiles_4bpp(bytes(32), 8, 8), palette, None)
    assert img.convert('RGB').getpixel((3, 3)) == (10, 20, 30)


def test_tiles_are_placed_row_major():
    data = bytes([0x11] * 32 + [0x22] * 32)
    pixels = decode_tiles_4bpp(data, 16, 8)
    assert pixels[0] == 1
    assert pixels[8] == 2


def test_size_must_be_tile_aligned():
    with pytest.raises(TileSizeInvalid):
        decode_tiles_4bpp(bytes(64), 12, 8)


def test_tilemap_entry_bits():
    entry = TilemapEntry.from_u16(0x5C05)
    assert (entry.tile, entry.hflip, entry.vflip, entry.palette) == (5, True, True, 5)


def test_horizontal_flip():
    tile = bytes([0x01, 0x00, 0x00, 0x00]) + bytes(28)
    pixels = compose_tilemap(tile, [TilemapEntry(0, True, False, 0)], 1, 1)
    assert pixels[7] == 1
    assert pixels[0] == 0
