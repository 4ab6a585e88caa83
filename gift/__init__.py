from gift.textcodec import decode_text, encode_text, decode_name, decode_script_string
from gift.crc16 import calculate_crc16, load_crc_table
from gift.giftcard import GiftCard, GiftCardType, RamScriptHeader, parse_gift_card, encode_gift_card, parse_ram_script_header
from gift.tickets import TicketManager, TicketResource, TicketError
__all__ = ['decode_text', 'encode_text', 'decode_name', 'decode_script_string', 'calculate_crc16', 'load_crc_table', 'GiftCard', 'GiftCardType', 'RamScriptHeader', 'parse_gift_card', 'encode_gift_card', 'parse_ram_script_header', 'TicketManager', 'TicketResource', 'TicketError']
