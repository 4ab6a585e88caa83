import struct
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import List
from gift.textcodec import decode_text, encode_text

GIFT_CARD_PAYLOAD_SIZE = 332
GIFT_CARD_HEADER_SIZE = 4
GIFT_CARD_TOTAL_SIZE = 336
SCRIPT_PAYLOAD_SIZE = 1000
SCRIPT_HEADER_SIZE = 4
SCRIPT_TOTAL_SIZE = 1004
TEXT_FIELD_SIZE = 40
RAM_SCRIPT_MAGIC = 51
ICON_HIDDEN = 65535

OFFSET_EVENT_ID = 0
OFFSET_ICON = 2
OFFSET_COUNT = 4
OFFSET_TYPE_COLOR_RESEND = 8
OFFSET_STAMP_MAX = 9
TEXT_FIELD_OFFSETS = {'title': 10, 'subtitle': 50, 'content_line_1': 90, 'content_line_2': 130, 'content_line_3': 170, 'content_line_4': 210, 'warning_line_1': 250, 'warning_line_2': 290}

class GiftCardType(IntEnum):
    EVENT = 0
    STAMP = 1
    COUNTER = 2

@dataclass
class GiftCard:
    event_id: int = 0
    icon: int = 0
    count: int = 0
    type_color_resend: int = 0
    stamp_max: int = 0
    title: str = ''
    subtitle: str = ''
    content_line_1: str = ''
    content_line_2: str = ''
    content_line_3: str = ''
    content_line_4: str = ''
    warning_line_1: str = ''
    warning_line_2: str = ''

    @property
    def card_type(self) -> int:
        return self.type_color_resend & 3

    @property
    def color(self) -> int:
        return self.type_color_resend >> 2 & 7

    @property
    def can_resend(self) -> bool:
        return bool(self.type_color_resend & 64)

    @property
    def is_empty(self) -> bool:
        return self.event_id == 0 and self.icon == 0

    @property
    def icon_hidden(self) -> bool:
        return self.icon == ICON_HIDDEN

    def with_flags(self, card_type: int, color: int, can_resend: bool) -> 'GiftCard':
        packed = card_type & 3 | (color & 7) << 2 | (64 if can_resend else 0)
        packed |= self.type_color_resend & 160
        return replace(self, type_color_resend=packed)

    def content_lines(self) -> List[str]:
        return [self.content_line_1, self.content_line_2, self.content_line_3, self.content_line_4]

@dataclass
class RamScriptHeader:
    magic: int = 0
    map_group: int = 0
    map_num: int = 0
    object_id: int = 0

    @property
    def is_valid(self) -> bool:
        return self.magic == RAM_SCRIPT_MAGIC

def parse_gift_card(payload: bytes) -> GiftCard:
    if len(payload) < GIFT_CARD_PAYLOAD_SIZE:
        return GiftCard()
    if len(payload) == GIFT_CARD_TOTAL_SIZE:
        payload = payload[GIFT_CARD_HEADER_SIZE:]
    event_id, icon, count, type_color_resend, stamp_max = struct.unpack_from('<HHIBB', payload, 0)
    card = GiftCard(event_id=event_id, icon=icon, count=count, type_color_resend=type_color_resend, stamp_max=stamp_max)
    for name, off in TEXT_FIELD_OFFSETS.items():
        setattr(card, name, decode_text(payload[off:off + TEXT_FIELD_SIZE], TEXT_FIELD_SIZE))
    return card

def encode_gift_card(card: GiftCard) -> bytes:
    out = bytearray(GIFT_CARD_PAYLOAD_SIZE)
    struct.pack_into('<HHIBB', out, 0, card.event_id & 65535, card.icon & 65535, card.count & 4294967295, card.type_color_resend & 255, card.stamp_max & 255)
    for name, off in TEXT_FIELD_OFFSETS.items():
        out[off:off + TEXT_FIELD_SIZE] = encode_text(getattr(card, name), TEXT_FIELD_SIZE)
    return bytes(out)

def parse_ram_script_header(data: bytes) -> RamScriptHeader:
    if len(data) < SCRIPT_HEADER_SIZE:
        return RamScriptHeader()
    return RamScriptHeader(magic=data[0], map_group=data[1], map_num=data[2], object_id=data[3])
