import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union
from gift.crc16 import CRC_TABLE_SIZE, load_crc_table
from gift.giftcard import GIFT_CARD_HEADER_SIZE, GIFT_CARD_PAYLOAD_SIZE, GIFT_CARD_TOTAL_SIZE, SCRIPT_TOTAL_SIZE
from save.gametype import GameType

CARD_SUFFIX = '_WonderCard.bin'
SCRIPT_SUFFIX = '_Script.bin'
DEFAULT_CRC_TABLE_NAME = 'tab.bin'
MANIFEST_NAME = 'tickets.json'
LANGUAGE_PATTERN = re.compile('_(ENG(?:USA|UK)?|ESP|FRE|GER|ITA|JAP)(?:_|$)', re.IGNORECASE)
TCGWC_YEAR_PATTERN = re.compile('TCGWC[_\\s]*(\\d{4})')
LANGUAGE_NAMES = {'ENGUSA': 'USA', 'ENGUK': 'UK', 'ESP': 'Spanish', 'FRE': 'French', 'GER': 'German', 'ITA': 'Italian', 'JAP': 'Japanese'}
KNOWN_EVENTS = [(('AURORA',), 'Aurora Ticket'), (('MYSTIC',), 'Mystic Ticket'), (('OLD_SEA', 'OLDSEA'), 'Old Sea Map'), (('EON',), 'Eon Ticket')]

class TicketError(ValueError):
    pass

@dataclass
class TicketResource:
    id: str
    name: str
    game_type: GameType
    card_file: str
    script_file: str
    description: str = ''
    language: str = ''
    card_data: Optional[bytes] = field(default=None, repr=False)
    script_data: Optional[bytes] = field(default=None, repr=False)

    @property
    def is_loaded(self) -> bool:
        return self.card_data is not None and self.script_data is not None

    def load_data(self, folder: Path):
        card = (folder / self.card_file).read_bytes()
        script = (folder / self.script_file).read_bytes()
        if len(card) != GIFT_CARD_TOTAL_SIZE:
            raise TicketError(f'{self.card_file}: expected {GIFT_CARD_TOTAL_SIZE} bytes, got {len(card)}')
        if len(script) != SCRIPT_TOTAL_SIZE:
            raise TicketError(f'{self.script_file}: expected {SCRIPT_TOTAL_SIZE} bytes, got {len(script)}')
        self.card_data = card
        self.script_data = script

def game_type_from_name(base_name: str) -> GameType:
    upper = base_name.upper()
    if '_FRLG_' in upper or upper.endswith('_FRLG'):
        return GameType.FIRERED_LEAFGREEN
    if '_EMERALD_' in upper or upper.endswith('_EMERALD') or '_E_' in upper or upper.endswith('_E'):
        return GameType.EMERALD
    if '_RS_' in upper or upper.endswith('_RS'):
        return GameType.RUBY_SAPPHIRE
    return GameType.UNKNOWN

def language_from_name(base_name: str) -> str:
    match = LANGUAGE_PATTERN.search(base_name)
    return match.group(1).upper() if match else ''

def format_event_name(code: str) -> str:
    words = code.replace('_', ' ').lower().split(' ')
    return ' '.join((w[:1].upper() + w[1:] for w in words))

def format_display_name(base_name: str, game_type: GameType, language: str) -> str:
    upper = base_name.upper()
    name = None
    for keys, label in KNOWN_EVENTS:
        if any((k in upper for k in keys)):
            name = label
            break
    if name is None:
        name = format_event_name(base_name.split('_')[0])
    if game_type != GameType.UNKNOWN:
        name += f' - {game_type.short_name}'
    if language:
        name += f' ({LANGUAGE_NAMES.get(language, language)})'
    if 'TCGWC' in upper:
        year = TCGWC_YEAR_PATTERN.search(upper)
        name += f' [TCGWC {year.group(1)}]' if year else ' [TCGWC]'
    elif '2004' in upper and 'FALL' in upper:
        name += ' [2004 Fall]'
    return name

class TicketManager:

    def __init__(self):
        self.folder: Optional[Path] = None
        self.crc_table: bytes = b''
        self.tickets: List[TicketResource] = []

    @property
    def is_loaded(self) -> bool:
        return bool(self.tickets) and len(self.crc_table) == CRC_TABLE_SIZE

    def load_from_folder(self, folder: Union[str, Path], crc_table_path: Optional[Union[str, Path]]=None):
        folder = Path(folder)
        self.tickets = []
        self.crc_table = b''
        if not folder.is_dir():
            raise TicketError(f'Tickets folder not found: {folder}')
        self.folder = folder
        self.crc_table = load_crc_table(crc_table_path or folder / DEFAULT_CRC_TABLE_NAME)
        self._discover()
        self._apply_manifest()
        print(f'[TicketManager] Loaded {len(self.tickets)} ticket(s) from {folder}')

    def _discover(self):
        card_files = sorted((p for p in self.folder.iterdir() if p.is_file() and p.name.endswith(CARD_SUFFIX)))
        if not card_files:
            raise TicketError(f'No ticket files found in {self.folder} (expected {{NAME}}{CARD_SUFFIX})')
        for card_path in card_files:
            base = card_path.name[:-len(CARD_SUFFIX)]
            script_path = self.folder / (base + SCRIPT_SUFFIX)
            if not script_path.exists():
                print(f'[TicketManager] WARNING: missing {script_path.name} for {card_path.name}')
                continue
            if card_path.stat().st_size != GIFT_CARD_TOTAL_SIZE:
                print(f'[TicketManager] WARNING: {card_path.name} is {card_path.stat().st_size} bytes, expected {GIFT_CARD_TOTAL_SIZE}')
                continue
            if script_path.stat().st_size != SCRIPT_TOTAL_SIZE:
                print(f'[TicketManager] WARNING: {script_path.name} is {script_path.stat().st_size} bytes, expected {SCRIPT_TOTAL_SIZE}')
                continue
            game_type = game_type_from_name(base)
            if game_type == GameType.UNKNOWN:
                print(f'[TicketManager] WARNING: cannot determine game for {card_path.name}')
                continue
            language = language_from_name(base)
            ticket = TicketResource(id=base.lower().replace(' ', '_'), name=format_display_name(base, game_type, language), game_type=game_type, card_file=card_path.name, script_file=script_path.name, language=language)
            self.tickets.append(ticket)
            print(f'[TicketManager] Discovered {ticket.id} ({ticket.name})')
        if not self.tickets:
            raise TicketError(f'No valid ticket pairs found in {self.folder}')

    def _apply_manifest(self):
        manifest = self.folder / MANIFEST_NAME
        if not manifest.exists():
            return
        try:
            doc = json.loads(manifest.read_text(encoding='utf-8'))
        except json.JSONDecodeError as e:
            print(f'[TicketManager] WARNING: ignoring {MANIFEST_NAME}: {e}')
            return
        entries: Dict[str, dict] = {}
        for entry in doc.get('tickets', []) if isinstance(doc, dict) else []:
            if isinstance(entry, dict) and entry.get('id'):
                entries[entry['id']] = entry
        for ticket in self.tickets:
            meta = entries.get(ticket.id)
            if meta:
                ticket.name = meta.get('name') or ticket.name
                ticket.description = meta.get('description', '')

    def tickets_for_game(self, game_type: GameType) -> List[TicketResource]:
        return [t for t in self.tickets if t.game_type == game_type]

    def find_ticket_by_id(self, ticket_id: str) -> Optional[TicketResource]:
        for ticket in self.tickets:
            if ticket.id == ticket_id:
                return ticket
        return None

    def ensure_loaded(self, ticket: TicketResource) -> TicketResource:
        if not ticket.is_loaded:
            ticket.load_data(self.folder)
        return ticket

    def find_ticket_by_gift_card(self, card_data: bytes, game_type: GameType) -> Optional[TicketResource]:
        if len(card_data) != GIFT_CARD_TOTAL_SIZE:
            return None
        payload = card_data[GIFT_CARD_HEADER_SIZE:]
        for ticket in self.tickets_for_game(game_type):
            try:
                self.ensure_loaded(ticket)
            except (OSError, TicketError) as e:
                print(f'[TicketManager] WARNING: cannot load {ticket.id}: {e}')
                continue
            other = ticket.card_data[GIFT_CARD_HEADER_SIZE:]
            if payload[:4] == other[:4] and payload[8:GIFT_CARD_PAYLOAD_SIZE] == other[8:GIFT_CARD_PAYLOAD_SIZE]:
                return ticket
        return None
