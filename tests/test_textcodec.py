from gift.textcodec import GEN3_TO_UNICODE, decode_name, decode_script_string, decode_text, encode_text


def test_table_covers_every_byte():
    assert len(GEN3_TO_UNICODE) == 256


def test_encode_decode_text():
    encoded = encode_text('Hi 42!', 10)
    assert len(encoded) == 10
    assert encoded[:6] == bytes([0xC2, 0xDD, 0x00, 0xA5, 0xA3, 0xAB])
    assert decode_text(encoded + b'\xff', 6) == 'Hi 42!'


def test_decode_stops_at_terminator():
    assert decode_text(bytes([0xBB, 0xFF, 0xBC]), 3) == 'A'


def test_decode_respects_max_len():
    assert decode_text(bytes([0xBB, 0xBC, 0xBD]), 2) == 'AB'


def test_encode_truncates():
    assert len(encode_text('ABCDEFGHIJ', 4)) == 4


def test_unknown_characters_encode_as_space():
    assert encode_text('#', 1) == b'\x00'


def test_reencoding_decoded_text_is_stable():
    for b in range(256):
        ch = GEN3_TO_UNICODE[b]
        if not ch:
            continue
        once = decode_text(encode_text(ch, 1), 1)
        assert decode_text(encode_text(once, 1), 1) == once


def test_decode_name_strips_padding():
    assert decode_name(bytes([0xC7, 0xC9, 0xC9, 0xC8, 0x00, 0x00, 0xFF, 0xBB])) == 'MOON'


def test_script_string_line_breaks():
    data = bytes([0xC2, 0xFE, 0xC3, 0xFB, 0xBB, 0xFF])
    assert decode_script_string(data, 0) == 'H\nI\n\nA'


def test_script_string_placeholders():
    data = bytes([0xFD, 0x01, 0xAB, 0xFD, 0x09, 0xFF])
    assert decode_script_string(data, 0, placeholders={1: '{PLAYER}'}) == '{PLAYER}!{VAR_09}'


def test_script_string_skips_control_code():
    data = bytes([0xFC, 0x01, 0xBB, 0xFF])
    assert decode_script_string(data, 0) == 'A'
