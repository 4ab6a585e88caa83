from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import yaml
from rom.romerrors import RomDatabaseError

DEFAULT_POKEMON_COUNT = 440
DEFAULT_ICON_SPECIES_LIMIT = 412
DEFAULT_WONDERCARD_COUNT = 8

def parse_int(value: Any, default: int=0) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise RomDatabaseError(f'Expected integer, got {value!r}')
    if isinstance(value, int):
        return value
    text = str(value).strip().replace('_', '')
    try:
        return int(text, 0)
    except ValueError:
        raise RomDatabaseError(f'Invalid integer value {value!r}') from None

def _int_list(values: Any) -> List[int]:
    if values is None:
        return []
    if not isinstance(values, list):
        values = [values]
    return [parse_int(v) for v in values]

def _pair(values: Any, default: Tuple[int, int]) -> Tuple[int, int]:
    if not values:
        return default
    if len(values) != 2:
        raise RomDatabaseError(f'Expected [width, height], got {values!r}')
    return (parse_int(values[0]), parse_int(values[1]))

@dataclass
class GlyphInfo:
    offset: int
    size: int = 0
    dimensions: Tuple[int, int] = (0, 0)
    char_size: Tuple[int, int] = (8, 16)
    source_tile_columns: int = 2
    width_table: str = ''
    fixed_width: int = 0

    @classmethod
    def from_dict(cls, d: Dict) -> 'GlyphInfo':
        return cls(offset=parse_int(d.get('offset')), size=parse_int(d.get('size')), dimensions=_pair(d.get('dimensions'), (0, 0)), char_size=_pair(d.get('char_size'), (8, 16)), source_tile_columns=parse_int(d.get('source_tile_columns'), 2), width_table=d.get('width') or '', fixed_width=parse_int(d.get('fixed_width')))

@dataclass
class GlyphWidthTable:
    offset: int
    size: int = 512

@dataclass
class NameTableInfo:
    offset: int
    entry_size: int
    count: int
    name_length: int = 0

    @classmethod
    def from_dict(cls, d: Dict) -> 'NameTableInfo':
        entry_size = parse_int(d.get('entry_size'))
        return cls(offset=parse_int(d.get('offset')), entry_size=entry_size, count=parse_int(d.get('count')), name_length=parse_int(d.get('name_length'), entry_size))

@dataclass
class PokemonSprites:
    front_sprites: int = 0
    back_sprites: int = 0
    front_palettes: int = 0
    back_palettes: int = 0
    shiny_palettes: int = 0
    icon_sprites: int = 0
    icon_palettes: int = 0
    icon_palette_indices: int = 0

    @property
    def has_icons(self) -> bool:
        return bool(self.icon_sprites and self.icon_palettes and self.icon_palette_indices)

@dataclass
class RomVersion:
    name: str
    game_family: str
    code: str
    md5: str
    offset_delta: int = 0
    stdpal_offsets: List[int] = field(default_factory=list)
    wondercard_palette_offsets: List[int] = field(default_factory=list)
    stamp_shadow_offsets: List[int] = field(default_factory=list)
    sprites: PokemonSprites = field(default_factory=PokemonSprites)
    wondercard_table: int = 0
    wondercard_count: int = DEFAULT_WONDERCARD_COUNT
    item_table: Optional[NameTableInfo] = None
    pokemon_table: Optional[NameTableInfo] = None
    move_table: Optional[NameTableInfo] = None

    @property
    def has_name_tables(self) -> bool:
        return self.item_table is not None or self.pokemon_table is not None or self.move_table is not None

    @property
    def display_name(self) -> str:
        for prefix in ('FireRed', 'LeafGreen', 'Emerald'):
            if self.name.startswith(prefix):
                return f'{prefix} (US)'
        return self.name

@dataclass
class GameFamily:
    name: str
    bpp: int = 2
    pokemon_count: int = DEFAULT_POKEMON_COUNT
    icon_species_limit: int = DEFAULT_ICON_SPECIES_LIMIT
    invalid_icon: int = 0
    latin_glyphs: Dict[int, GlyphInfo] = field(default_factory=dict)
    japanese_glyphs: Dict[int, GlyphInfo] = field(default_factory=dict)
    glyph_widths: Dict[str, GlyphWidthTable] = field(default_factory=dict)
    versions: List[RomVersion] = field(default_factory=list)

def _parse_version(name: str, family: str, d: Dict) -> RomVersion:
    if not isinstance(d, dict):
        raise RomDatabaseError(f'Version {name} must be a mapping')
    md5 = str(d.get('md5') or '').strip().lower()
    if not md5:
        raise RomDatabaseError(f'Version {name} has no md5')
    palettes = d.get('palettes') or {}
    sprites = d.get('sprites') or {}
    tables = d.get('name_tables') or {}
    version = RomVersion(name=name, game_family=family, code=str(d.get('code') or ''), md5=md5, offset_delta=parse_int(d.get('offset_delta')), stdpal_offsets=_int_list(palettes.get('stdpal')), wondercard_palette_offsets=_int_list(palettes.get('wondercard')), stamp_shadow_offsets=_int_list(palettes.get('stamp_shadow')), sprites=PokemonSprites(**{k: parse_int(sprites.get(k)) for k in PokemonSprites.__dataclass_fields__}), wondercard_table=parse_int(d.get('wondercard_table')), wondercard_count=parse_int(d.get('wondercard_count'), DEFAULT_WONDERCARD_COUNT))
    if tables.get('items'):
        version.item_table = NameTableInfo.from_dict(tables['items'])
    if tables.get('pokemon'):
        version.pokemon_table = NameTableInfo.from_dict(tables['pokemon'])
    if tables.get('moves'):
        version.move_table = NameTableInfo.from_dict(tables['moves'])
    return version

def _parse_family(name: str, d: Dict) -> GameFamily:
    if not isinstance(d, dict):
        raise RomDatabaseError(f'Game family {name} must be a mapping')
    glyphs = d.get('glyphs') or {}
    family = GameFamily(name=name, bpp=parse_int(d.get('bpp'), 2), pokemon_count=parse_int(d.get('pokemon_count'), DEFAULT_POKEMON_COUNT), icon_species_limit=parse_int(d.get('icon_species_limit'), DEFAULT_ICON_SPECIES_LIMIT), invalid_icon=parse_int(d.get('invalid_icon')))
    for index, info in (glyphs.get('latin') or {}).items():
        family.latin_glyphs[parse_int(index)] = GlyphInfo.from_dict(info)
    for index, info in (glyphs.get('japanese') or {}).items():
        family.japanese_glyphs[parse_int(index)] = GlyphInfo.from_dict(info)
    for table_name, info in (d.get('glyph_widths') or {}).items():
        family.glyph_widths[table_name] = GlyphWidthTable(offset=parse_int(info.get('offset')), size=parse_int(info.get('size'), 512))
    for version_name, info in (d.get('versions') or {}).items():
        family.versions.append(_parse_version(version_name, name, info))
    return family

class RomDatabase:

    def __init__(self):
        self.families: Dict[str, GameFamily] = {}
        self._by_md5: Dict[str, RomVersion] = {}
        self._by_name: Dict[str, RomVersion] = {}

    @classmethod
    def from_dict(cls, data: Dict) -> 'RomDatabase':
        if not isinstance(data, dict) or not isinstance(data.get('games'), dict):
            raise RomDatabaseError("ROM database must contain a 'games' mapping")
        db = cls()
        for family_name, info in data['games'].items():
            family = _parse_family(family_name, info)
            db.families[family_name] = family
            for version in family.versions:
                db._by_md5[version.md5] = version
                db._by_name[version.name] = version
        return db

    @classmethod
    def load_yaml(cls, path: Union[str, Path]) -> 'RomDatabase':
        path = Path(path)
        if not path.exists():
            raise RomDatabaseError(f'ROM database not found: {path}')
        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise RomDatabaseError(f'Invalid YAML in {path.name}: {e}') from e
        db = cls.from_dict(data)
        print(f'[RomDatabase] Loaded {len(db._by_md5)} ROM version(s) from {path.name}')
        return db

    def identify(self, md5: str) -> Optional[RomVersion]:
        return self._by_md5.get(md5.strip().lower())

    def get_version(self, name: str) -> Optional[RomVersion]:
        return self._by_name.get(name)

    def get_game_family(self, name: str) -> Optional[GameFamily]:
        return self.families.get(name)

    def supported_md5s(self) -> List[str]:
        return sorted(self._by_md5)

    def glyph_info(self, version: RomVersion, font_index: int, japanese: bool=False) -> Optional[GlyphInfo]:
        family = self.get_game_family(version.game_family)
        if family is None:
            return None
        glyphs = family.japanese_glyphs if japanese else family.latin_glyphs
        return glyphs.get(font_index)

    def resolve_glyph_offset(self, version: RomVersion, font_index: int, japanese: bool=False) -> Optional[int]:
        info = self.glyph_info(version, font_index, japanese)
        if info is None:
            return None
        return info.offset + version.offset_delta

    def resolve_width_table_offset(self, version: RomVersion, table_name: str) -> Optional[int]:
        family = self.get_game_family(version.game_family)
        if family is None or table_name not in family.glyph_widths:
            return None
        return family.glyph_widths[table_name].offset + version.offset_delta

    def resolve_font_width_table_offset(self, version: RomVersion, font_index: int) -> Optional[int]:
        info = self.glyph_info(version, font_index)
        if info is None or not info.width_table:
            return None
        return self.resolve_width_table_offset(version, info.width_table)
