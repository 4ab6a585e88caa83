import os
import shutil
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union
from gift.crc16 import calculate_crc16
from gift.giftcard import GiftCard, GIFT_CARD_HEADER_SIZE, GIFT_CARD_PAYLOAD_SIZE, GIFT_CARD_TOTAL_SIZE, RAM_SCRIPT_MAGIC, SCRIPT_HEADER_SIZE, SCRIPT_PAYLOAD_SIZE, SCRIPT_TOTAL_SIZE, encode_gift_card, parse_gift_card
from save.gametype import GameType
from save.saveerrors import ChecksumMismatch, SaveSizeInvalid, SectionNotFound, UnsupportedGame

SAVE_FILE_SIZE = 131072
SECTION_SIZE = 4096
SECTIONS_PER_SLOT = 14
SLOT_SIZE = SECTION_SIZE * SECTIONS_PER_SLOT
SECTION_ID_OFFSET = 0xFF4
CHECKSUM_OFFSET = 0xFF6
SIGNATURE_OFFSET = 0xFF8
SAVE_INDEX_OFFSET = 0xFFC
SECTION_SIGNATURE = 0x08012025
GAME_CODE_OFFSET = 0xAC
SECURITY_KEY_OFFSET = 0xB0
GAME_CODE_FRLG = 1
DEFAULT_CHECKSUM_LENGTH = 0xF80
GIFT_SECTION_ID = 4
FLAGS_SECTION_ID = 2
METADATA_SIZE = 32
METADATA_ICON_OFFSET = 6
TRAINER_IDS_SIZE = 40

@dataclass(frozen=True)
class GiftBlockLayout:
    card: int
    script: int
    metadata: int
    trainer_ids: int
    flag_byte: int
    flag_mask: int

GIFT_LAYOUTS: Dict[GameType, GiftBlockLayout] = {
    GameType.FIRERED_LEAFGREEN: GiftBlockLayout(card=0x460, script=0x79C, metadata=0x5B4, trainer_ids=0x75C, flag_byte=0x067, flag_mask=0x02),
    GameType.EMERALD: GiftBlockLayout(card=0x56C, script=0x8A8, metadata=0x6C0, trainer_ids=0x868, flag_byte=0x40B, flag_mask=0x08),
}

@dataclass
class InjectionOptions:
    clear_metadata: bool = True
    clear_trainer_ids: bool = False

@dataclass
class SlotInfo:
    slot: int
    save_index: int = 0
    game_code: int = 0
    has_security_key: bool = False
    game_type: GameType = GameType.UNKNOWN
    bad_sections: List[int] = field(default_factory=list)
    missing_signature: List[int] = field(default_factory=list)
    section_map: Dict[int, int] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return sorted(self.section_map) == list(range(SECTIONS_PER_SLOT))

    @property
    def valid(self) -> bool:
        return not self.bad_sections and (not self.missing_signature) and self.complete

def compute_section_checksum(section: bytes, length: int) -> int:
    words = length // 4
    total = sum(struct.unpack_from(f'<{words}I', section, 0)) & 4294967295
    total = (total & 65535) + (total >> 16)
    return total & 65535

def section_checksum_length(logical_id: int, game_type: GameType) -> int:
    if logical_id == 0:
        if game_type == GameType.EMERALD:
            return 0xF2C
        if game_type == GameType.FIRERED_LEAFGREEN:
            return 0xF24
        return 0x890
    if logical_id == 4:
        if game_type == GameType.EMERALD:
            return 0xF08
        if game_type == GameType.RUBY_SAPPHIRE:
            return 0xC40
        return 0xEE8
    if logical_id == 13:
        return 0x7D0
    return DEFAULT_CHECKSUM_LENGTH

def game_type_from_codes(game_code: int, security_key: int) -> GameType:
    if game_code == GAME_CODE_FRLG:
        return GameType.FIRERED_LEAFGREEN
    if security_key != 0:
        return GameType.EMERALD
    if game_code == 0:
        return GameType.RUBY_SAPPHIRE
    return GameType.UNKNOWN

class SaveFile:

    def __init__(self, data: Union[bytes, bytearray], path: Optional[Path]=None):
        if len(data) != SAVE_FILE_SIZE:
            raise SaveSizeInvalid(f'Invalid save size: {len(data)} bytes (expected {SAVE_FILE_SIZE})')
        self.data = bytearray(data)
        self.path = Path(path) if path else None
        self.slots = [self.analyze_slot(0), self.analyze_slot(1)]
        self.active_slot = self.detect_active_slot()
        self.game_type = self.slots[self.active_slot].game_type
        self._section_index = dict(self.slots[self.active_slot].section_map)
        print(f'[SaveFile] Loaded save: slot {self.active_slot} active, {self.game_type.value}')
        if not self.slots[self.active_slot].valid:
            print(f'[SaveFile] WARNING: active slot has bad sections {self.slots[self.active_slot].bad_sections}')

    @classmethod
    def from_bytes(cls, data: bytes) -> 'SaveFile':
        return cls(data)

    @classmethod
    def load_file(cls, path: Union[str, Path]) -> 'SaveFile':
        path = Path(path)
        return cls(path.read_bytes(), path)

    def to_bytes(self) -> bytes:
        return bytes(self.data)

    def save_to_file(self, path: Optional[Union[str, Path]]=None, make_backup: bool=True) -> Path:
        target = Path(path) if path else self.path
        if target is None:
            raise ValueError('No output path given and save was not loaded from disk')
        if make_backup and target.exists():
            backup = target.with_suffix('.bak')
            shutil.copy2(target, backup)
            print(f'[SaveFile] Backup written: {backup.name}')
        tmp = Path(str(target) + '.tmp')
        tmp.write_bytes(self.data)
        os.replace(tmp, target)
        self.path = target
        print(f'[SaveFile] Saved {len(self.data):,} bytes to {target.name}')
        return target

    def _section_base(self, slot: int, physical: int) -> int:
        return slot * SLOT_SIZE + physical * SECTION_SIZE

    def analyze_slot(self, slot: int) -> SlotInfo:
        info = SlotInfo(slot=slot)
        sections = []
        for physical in range(SECTIONS_PER_SLOT):
            base = self._section_base(slot, physical)
            section_id = struct.unpack_from('<H', self.data, base + SECTION_ID_OFFSET)[0]
            sections.append((physical, base, section_id))
            if section_id < SECTIONS_PER_SLOT and section_id not in info.section_map:
                info.section_map[section_id] = physical
            if section_id == 0:
                info.game_code = struct.unpack_from('<I', self.data, base + GAME_CODE_OFFSET)[0]
                key = struct.unpack_from('<I', self.data, base + SECURITY_KEY_OFFSET)[0]
                info.has_security_key = key != 0
                info.game_type = game_type_from_codes(info.game_code, key)
        info.save_index = struct.unpack_from('<I', self.data, self._section_base(slot, 0) + SAVE_INDEX_OFFSET)[0]
        for physical, base, section_id in sections:
            if struct.unpack_from('<I', self.data, base + SIGNATURE_OFFSET)[0] != SECTION_SIGNATURE:
                info.missing_signature.append(section_id)
            stored = struct.unpack_from('<H', self.data, base + CHECKSUM_OFFSET)[0]
            length = section_checksum_length(section_id, info.game_type)
            if compute_section_checksum(self.data[base:base + SECTION_SIZE], length) != stored:
                info.bad_sections.append(section_id)
        return info

    def detect_active_slot(self) -> int:
        first, second = self.slots
        if first.valid and (not second.valid):
            return 0
        if second.valid and (not first.valid):
            return 1
        return 0 if first.save_index > second.save_index else 1

    def detect_game_type(self) -> GameType:
        return self.slots[self.active_slot].game_type

    def slot_info(self, slot: int) -> SlotInfo:
        return self.analyze_slot(slot)

    def validate_checksums(self) -> bool:
        return not self.analyze_slot(self.active_slot).bad_sections

    def verify_active_slot(self):
        info = self.analyze_slot(self.active_slot)
        if info.bad_sections:
            raise ChecksumMismatch(self.active_slot, info.bad_sections)

    def find_section_by_logical_id(self, logical_id: int) -> Optional[int]:
        return self._section_index.get(logical_id)

    def section_offset(self, logical_id: int) -> int:
        physical = self.find_section_by_logical_id(logical_id)
        if physical is None:
            raise SectionNotFound(f'Logical section {logical_id} not found in slot {self.active_slot}')
        return self._section_base(self.active_slot, physical)

    def recompute_section_checksum(self, logical_id: int) -> int:
        base = self.section_offset(logical_id)
        length = section_checksum_length(logical_id, self.game_type)
        checksum = compute_section_checksum(self.data[base:base + SECTION_SIZE], length)
        struct.pack_into('<H', self.data, base + CHECKSUM_OFFSET, checksum)
        return checksum

    def _gift_layout(self) -> GiftBlockLayout:
        if self.game_type == GameType.RUBY_SAPPHIRE:
            raise UnsupportedGame('Ruby/Sapphire saves do not support gift cards')
        layout = GIFT_LAYOUTS.get(self.game_type)
        if layout is None:
            raise UnsupportedGame('Unknown game type, cannot access gift card data')
        return layout

    def has_wonder_card(self) -> bool:
        layout = GIFT_LAYOUTS.get(self.game_type)
        physical = self.find_section_by_logical_id(GIFT_SECTION_ID)
        if layout is None or physical is None:
            return False
        base = self._section_base(self.active_slot, physical)
        return struct.unpack_from('<H', self.data, base + layout.card)[0] != 0

    def extract_gift_card_raw(self) -> bytes:
        layout = self._gift_layout()
        start = self.section_offset(GIFT_SECTION_ID) + layout.card
        return bytes(self.data[start:start + GIFT_CARD_TOTAL_SIZE])

    def extract_gift_card(self) -> GiftCard:
        return parse_gift_card(self.extract_gift_card_raw()[GIFT_CARD_HEADER_SIZE:])

    def extract_script(self) -> bytes:
        layout = self._gift_layout()
        start = self.section_offset(GIFT_SECTION_ID) + layout.script + SCRIPT_HEADER_SIZE
        return bytes(self.data[start:start + SCRIPT_PAYLOAD_SIZE])

    def inject_gift_card(self, card: Optional[GiftCard], crc_table: bytes, script_data: Optional[bytes]=None, raw_card_data: Optional[bytes]=None, options: Optional[InjectionOptions]=None):
        options = options or InjectionOptions()
        layout = self._gift_layout()
        base = self.section_offset(GIFT_SECTION_ID)
        if raw_card_data is not None and len(raw_card_data) == GIFT_CARD_TOTAL_SIZE:
            payload = bytes(raw_card_data[GIFT_CARD_HEADER_SIZE:])
        elif raw_card_data is not None and len(raw_card_data) == GIFT_CARD_PAYLOAD_SIZE:
            payload = bytes(raw_card_data)
        elif card is not None:
            payload = encode_gift_card(card)
        else:
            raise ValueError('Either a gift card record or raw card bytes of 332/336 bytes are required')
        script_payload = None
        if script_data is not None:
            if len(script_data) == SCRIPT_TOTAL_SIZE:
                script_payload = bytearray(script_data[SCRIPT_HEADER_SIZE:])
            elif len(script_data) == SCRIPT_PAYLOAD_SIZE:
                script_payload = bytearray(script_data)
            else:
                raise ValueError(f'Script must be {SCRIPT_PAYLOAD_SIZE} or {SCRIPT_TOTAL_SIZE} bytes, got {len(script_data)}')
            script_payload[0] = RAM_SCRIPT_MAGIC
        card_crc = calculate_crc16(payload, crc_table)
        script_crc = calculate_crc16(script_payload, crc_table) if script_payload is not None else None
        if options.clear_metadata:
            start = base + layout.metadata - 4
            self.data[start:start + METADATA_SIZE + 4] = bytes(METADATA_SIZE + 4)
        if options.clear_trainer_ids:
            start = base + layout.trainer_ids
            self.data[start:start + TRAINER_IDS_SIZE] = bytes(TRAINER_IDS_SIZE)
        card_start = base + layout.card
        self.data[card_start:card_start + GIFT_CARD_TOTAL_SIZE] = struct.pack('<HH', card_crc, 0) + payload
        if script_payload is not None:
            script_start = base + layout.script
            self.data[script_start:script_start + SCRIPT_TOTAL_SIZE] = struct.pack('<HH', script_crc, 0) + bytes(script_payload)
        icon = struct.unpack_from('<H', payload, 2)[0]
        struct.pack_into('<H', self.data, base + layout.metadata + METADATA_ICON_OFFSET, icon)
        checksum = self.recompute_section_checksum(GIFT_SECTION_ID)
        print(f'[SaveFile] Injected gift card: CRC=0x{card_crc:04X} icon={icon} section checksum=0x{checksum:04X}')
        if script_crc is not None:
            print(f'[SaveFile] Injected script: CRC=0x{script_crc:04X}')

    def _flag_position(self):
        layout = self._gift_layout()
        return (self.section_offset(FLAGS_SECTION_ID) + layout.flag_byte, layout.flag_mask)

    def is_mystery_gift_enabled(self) -> bool:
        offset, mask = self._flag_position()
        return bool(self.data[offset] & mask)

    def set_mystery_gift_enabled(self, enabled: bool):
        offset, mask = self._flag_position()
        if enabled:
            self.data[offset] |= mask
        else:
            self.data[offset] &= ~mask & 255
        self.recompute_section_checksum(FLAGS_SECTION_ID)
        print(f"[SaveFile] Mystery Gift {('enabled' if enabled else 'disabled')}")

    def enable_mystery_gift(self):
        self.set_mystery_gift_enabled(True)
