import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Union
from rom.romdatabase import RomDatabase
from rom.romreader import RomReader

EXPECTED_ROM_SIZE = 16777216
MD5_CHUNK_SIZE = 1048576
MAX_SEARCH_DEPTH = 3
SKIP_DIRS = {'build', '.git', 'node_modules', '__pycache__', '.cache'}
STANDARD_ROM_NAMES = [
    'Pokemon - FireRed Version (USA).gba',
    'Pokemon - FireRed Version (USA, Europe).gba',
    'Pokemon - FireRed Version (USA, Europe) (Rev 1).gba',
    'Pokemon - LeafGreen Version (USA).gba',
    'Pokemon - LeafGreen Version (USA, Europe).gba',
    'Pokemon - LeafGreen Version (USA, Europe) (Rev 1).gba',
    'Pokemon - Emerald Version (USA).gba',
    'Pokemon - Emerald Version (USA, Europe).gba',
    'firered.gba', 'leafgreen.gba', 'emerald.gba',
    'pokemon_firered.gba', 'pokemon_leafgreen.gba', 'pokemon_emerald.gba',
    'pokemonfirered.gba', 'pokemonleafgreen.gba', 'pokemonemerald.gba',
    'fr.gba', 'lg.gba', 'em.gba', 'poke_fr.gba', 'poke_lg.gba', 'poke_em.gba',
]

@dataclass
class RomSearchResult:
    found: bool = False
    path: str = ''
    version_name: str = ''
    md5: str = ''
    error_message: str = ''

def compute_md5(path: Union[str, Path]) -> str:
    digest = hashlib.md5()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(MD5_CHUNK_SIZE), b''):
            digest.update(chunk)
    return digest.hexdigest()

def load_rom_file(path: Union[str, Path], database: RomDatabase) -> RomReader:
    path = Path(path)
    print(f'[RomLoader] Loading ROM: {path.name}')
    return RomReader.load(path.read_bytes(), database, path)

class RomLoader:

    def __init__(self, database: RomDatabase):
        self.database = database

    def validate_rom(self, path: Union[str, Path]) -> RomSearchResult:
        path = Path(path)
        result = RomSearchResult(path=str(path))
        if not path.is_file():
            result.error_message = 'File does not exist'
            return result
        size = path.stat().st_size
        if size != EXPECTED_ROM_SIZE:
            result.error_message = f'Invalid file size: {size} (expected {EXPECTED_ROM_SIZE})'
            return result
        result.md5 = compute_md5(path)
        version = self.database.identify(result.md5)
        if version is None:
            result.error_message = f'Unknown ROM (MD5: {result.md5})'
            return result
        result.found = True
        result.version_name = version.name
        print(f'[RomLoader] ROM identified: {version.name} ({path.name})')
        return result

    def _walk_roms(self, directory: Path, depth: int=0) -> Iterator[Path]:
        try:
            entries: List[Path] = sorted(directory.iterdir())
        except OSError as e:
            print(f'[RomLoader] WARNING: cannot list {directory}: {e}')
            return
        for entry in entries:
            if entry.is_file() and entry.suffix.lower() == '.gba':
                yield entry
        if depth >= MAX_SEARCH_DEPTH:
            return
        for entry in entries:
            if entry.is_dir() and entry.name not in SKIP_DIRS:
                yield from self._walk_roms(entry, depth + 1)

    def find_rom(self, directory: Union[str, Path]) -> RomSearchResult:
        directory = Path(directory)
        print(f'[RomLoader] Searching for ROM in {directory}')
        for name in STANDARD_ROM_NAMES:
            candidate = directory / name
            if candidate.is_file():
                result = self.validate_rom(candidate)
                if result.found:
                    return result
        for candidate in self._walk_roms(directory):
            try:
                if candidate.stat().st_size != EXPECTED_ROM_SIZE:
                    continue
            except OSError:
                continue
            result = self.validate_rom(candidate)
            if result.found:
                return result
        return RomSearchResult(error_message='No valid Pokemon Gen3 ROM found in ' + str(directory))
