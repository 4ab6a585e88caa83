from rom.romerrors import RomError, RomSizeInvalid, IdentificationFailed, OffsetOutOfRange, CompressionFormatError, RomDatabaseError, TileSizeInvalid
from rom.romdatabase import RomDatabase, RomVersion, GameFamily, GlyphInfo, GlyphWidthTable, NameTableInfo, PokemonSprites
from rom.lz77util import decompress_lz77, compress_lz77
from rom.tileutil import gba_color_to_rgb, parse_palette, TilemapEntry
from rom.romreader import RomReader, WonderCardGraphics
from rom.romloader import RomLoader, RomSearchResult, compute_md5, load_rom_file
__all__ = ['RomError', 'RomSizeInvalid', 'IdentificationFailed', 'OffsetOutOfRange', 'CompressionFormatError', 'RomDatabaseError', 'TileSizeInvalid', 'RomDatabase', 'RomVersion', 'GameFamily', 'GlyphInfo', 'GlyphWidthTable', 'NameTableInfo', 'PokemonSprites', 'decompress_lz77', 'compress_lz77', 'gba_color_to_rgb', 'parse_palette', 'TilemapEntry', 'RomReader', 'WonderCardGraphics', 'RomLoader', 'RomSearchResult', 'compute_md5', 'load_rom_file']
