from typing import Dict, Optional

GEN3_TO_UNICODE = [
    ' ', 'À', 'Á', 'Â', 'Ç', 'È', 'É', 'Ê', 'Ë', 'Ì', ' ', 'Î', 'Ï', 'Ò', 'Ó', 'Ô',
    'Œ', 'Ù', 'Ú', 'Û', 'Ñ', 'ß', 'à', 'á', '', 'ç', 'è', 'é', 'ê', 'ë', 'ì', '',
    'î', 'ï', 'ò', 'ó', 'ô', 'œ', 'ù', 'ú', 'û', 'ñ', 'º', 'ª', 'ᵉ', '&', '+', '',
    '', 'L', 'v', '=', ';', '', '', '', '', '', '', '', '', '', '', '',
    '', '¿', '¡', 'P', 'K', 'M', 'N', '', '', '', '', 'Í', '%', '(', ')', '',
    '', 'â', '', 'í', '', '', '', '', '', '', '↑', '↓', '←', '→', '', '',
    '*', '*', '*', '*', 'ᵉ', '<', '>', '', '', '', '', '', '', '', '', '',
    '', '', '', '', '', '', '', '', '', '↑', '↓', '←', '→', '*', '*', '*',
    '*', '*', '*', '*', 'ᵉ', '<', '>', '', '', '', '', '', '', '', '', '',
    '', '', '', '', '', '', '', '', '', '', '', '', '', '', '', '',
    '', '0', '1', '2', '3', '4', '5', '6', '7', '8', '9', '!', '?', '.', '-', '・',
    '‥', '“', '”', '‘', '’', '♂', '♀', ' ', ',', '×', '/', 'A', 'B', 'C', 'D', 'E',
    'F', 'G', 'H', 'I', 'J', 'K', 'L', 'M', 'N', 'O', 'P', 'Q', 'R', 'S', 'T', 'U',
    'V', 'W', 'X', 'Y', 'Z', 'a', 'b', 'c', 'd', 'e', 'f', 'g', 'h', 'i', 'j', 'k',
    'l', 'm', 'n', 'o', 'p', 'q', 'r', 's', 't', 'u', 'v', 'w', 'x', 'y', 'z', '►',
    ':', 'Ä', 'Ö', 'Ü', 'ä', 'ö', 'ü', '', '', '', '', '', '', '', '', '',
]

TERMINATOR = 255
SPACE_CODES = (0, 160, 250, 251, 252, 253, 254)
PUNCTUATION_CODES = {'!': 171, '?': 172, '.': 173, '-': 174, ',': 184, '/': 186, ':': 240, ' ': 0}

NAME_CHARSET: Dict[int, str] = {0: ' ', 171: '!', 172: '?', 173: '.', 174: '-', 180: "'", 184: ',', 186: '/', 240: ':'}
for _i in range(10):
    NAME_CHARSET[161 + _i] = chr(ord('0') + _i)
for _i in range(26):
    NAME_CHARSET[187 + _i] = chr(ord('A') + _i)
    NAME_CHARSET[213 + _i] = chr(ord('a') + _i)

SCRIPT_CHARSET: Dict[int, str] = {
    0: ' ', 1: 'À', 2: 'Á', 3: 'Â', 4: 'Ç', 5: 'È', 6: 'É', 7: 'Ê', 8: 'Ë', 9: 'Ì',
    11: 'Î', 12: 'Ï', 13: 'Ò', 14: 'Ó', 15: 'Ô', 16: 'Œ', 17: 'Ù', 18: 'Ú', 19: 'Û',
    20: 'Ñ', 21: 'ß', 22: 'à', 23: 'á', 25: 'ç', 26: 'è', 27: 'é', 28: 'ê', 29: 'ë',
    30: 'ì', 32: 'î', 33: 'ï', 34: 'ò', 35: 'ó', 36: 'ô', 37: 'œ', 38: 'ù', 39: 'ú',
    40: 'û', 41: 'ñ', 42: 'º', 43: 'ª', 45: '&', 46: '+', 53: '=', 54: ';',
    81: '¿', 82: '¡', 90: 'Í', 91: '%', 92: '(', 93: ')', 104: 'â', 111: 'í',
    171: '!', 172: '?', 173: '.', 174: '-', 176: '…', 177: '“', 178: '”', 179: '‘',
    180: '’', 181: '♂', 182: '♀', 183: '$', 184: ',', 185: '×', 186: '/',
    239: '▶', 240: ':', 241: 'Ä', 242: 'Ö', 243: 'Ü', 244: 'ä', 245: 'ö', 246: 'ü',
    250: '\\l', 251: '\\p', 252: '\\c', 253: '\\v', 254: '\\n',
}
for _i in range(10):
    SCRIPT_CHARSET[161 + _i] = chr(ord('0') + _i)
for _i in range(26):
    SCRIPT_CHARSET[187 + _i] = chr(ord('A') + _i)
    SCRIPT_CHARSET[213 + _i] = chr(ord('a') + _i)

def decode_text(data: bytes, max_len: int) -> str:
    out = []
    for b in data[:max_len]:
        if b == TERMINATOR:
            break
        ch = GEN3_TO_UNICODE[b]
        if ch:
            out.append(ch)
        elif b in SPACE_CODES:
            out.append(' ')
    return ''.join(out)

def _encode_char(ch: str) -> int:
    if '0' <= ch <= '9':
        return 161 + ord(ch) - ord('0')
    if 'A' <= ch <= 'Z':
        return 187 + ord(ch) - ord('A')
    if 'a' <= ch <= 'z':
        return 213 + ord(ch) - ord('a')
    if ch in PUNCTUATION_CODES:
        return PUNCTUATION_CODES[ch]
    for code, mapped in enumerate(GEN3_TO_UNICODE):
        if mapped == ch:
            return code
    return 0

def encode_text(text: str, max_len: int) -> bytes:
    out = bytearray(max_len)
    for i, ch in enumerate(text[:max_len]):
        out[i] = _encode_char(ch)
    return bytes(out)

def decode_name(data: bytes) -> str:
    chars = []
    for b in data:
        if b == TERMINATOR:
            break
        chars.append(NAME_CHARSET.get(b, ''))
    return ''.join(chars).strip()

def decode_script_string(data: bytes, offset: int, max_len: int=200, placeholders: Optional[Dict[int, str]]=None) -> str:
    placeholders = placeholders or {}
    result = []
    i = offset
    end = min(offset + max_len, len(data))
    while i < end:
        b = data[i]
        if b == TERMINATOR:
            break
        if b == 253 and i + 1 < end:
            var_id = data[i + 1]
            result.append(placeholders.get(var_id, f'{{VAR_{var_id:02x}}}'))
            i += 2
            continue
        if b == 252 and i + 1 < end:
            i += 2
            continue
        ch = SCRIPT_CHARSET.get(b, '')
        if ch in ('\\n', '\\l'):
            result.append('\n')
        elif ch == '\\p':
            result.append('\n\n')
        elif ch and (not ch.startswith('\\')):
            result.append(ch)
        i += 1
    return ''.join(result)
