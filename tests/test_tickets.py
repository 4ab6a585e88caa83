import json

import pytest

from gift.giftcard import GiftCard, SCRIPT_TOTAL_SIZE, encode_gift_card
from gift.tickets import TicketError, TicketManager, format_display_name, game_type_from_name, language_from_name
from save.gametype import GameType


def _card_record(event_id, title):
    return b'\x00\x00\x00\x00' + encode_gift_card(GiftCard(event_id=event_id, icon=1, title=title))


@pytest.fixture
def ticket_folder(tmp_path, crc_table):
    (tmp_path / 'tab.bin').write_bytes(crc_table)
    (tmp_path / 'Aurora_Ticket_FRLG_ENGUSA_WonderCard.bin').write_bytes(_card_record(1, 'AURORA'))
    (tmp_path / 'Aurora_Ticket_FRLG_ENGUSA_Script.bin').write_bytes(bytes(SCRIPT_TOTAL_SIZE))
    (tmp_path / 'Old_Sea_Map_E_ENGUSA_WonderCard.bin').write_bytes(_card_record(2, 'OLD SEA'))
    (tmp_path / 'Old_Sea_Map_E_ENGUSA_Script.bin').write_bytes(bytes(SCRIPT_TOTAL_SIZE))
    # no script partner, skipped
    (tmp_path / 'Eon_Ticket_E_WonderCard.bin').write_bytes(_card_record(3, 'EON'))
    return tmp_path


def test_name_helpers():
    assert game_type_from_name('Aurora_Ticket_FRLG_ENGUSA') == GameType.FIRERED_LEAFGREEN
    assert game_type_from_name('Eon_Ticket_E') == GameType.EMERALD
    assert game_type_from_name('Something') == GameType.UNKNOWN
    assert language_from_name('Mystic_Ticket_E_GER') == 'GER'
    assert format_display_name('Aurora_Ticket_FRLG_ENGUSA', GameType.FIRERED_LEAFGREEN, 'ENGUSA') == 'Aurora Ticket - FRLG (USA)'
    assert format_display_name('Mystic_Ticket_TCGWC_2005_E', GameType.EMERALD, '') == 'Mystic Ticket - Emerald [TCGWC 2005]'


def test_discovers_complete_pairs(ticket_folder):
    manager = TicketManager()
    manager.load_from_folder(ticket_folder)
    assert manager.is_loaded
    assert sorted(t.id for t in manager.tickets) == ['aurora_ticket_frlg_engusa', 'old_sea_map_e_engusa']
    emerald = manager.tickets_for_game(GameType.EMERALD)
    assert [t.name for t in emerald] == ['Old Sea Map - Emerald (USA)']


def test_manifest_overrides(ticket_folder):
    manifest = {'tickets': [{'id': 'aurora_ticket_frlg_engusa', 'name': 'Aurora Ticket', 'description': 'Deoxys event'}]}
    (ticket_folder / 'tickets.json').write_text(json.dumps(manifest))
    manager = TicketManager()
    manager.load_from_folder(ticket_folder)
    ticket = manager.find_ticket_by_id('aurora_ticket_frlg_engusa')
    assert ticket.name == 'Aurora Ticket'
    assert ticket.description == 'Deoxys event'


def test_lazy_loading(ticket_folder):
    manager = TicketManager()
    manager.load_from_folder(ticket_folder)
    ticket = manager.find_ticket_by_id('old_sea_map_e_engusa')
    assert not ticket.is_loaded
    manager.ensure_loaded(ticket)
    assert ticket.is_loaded
    assert len(ticket.script_data) == SCRIPT_TOTAL_SIZE


def test_match_ignores_counter(ticket_folder):
    manager = TicketManager()
    manager.load_from_folder(ticket_folder)
    record = bytearray(_card_record(1, 'AURORA'))
    record[8] = 0x09
    match = manager.find_ticket_by_gift_card(bytes(record), GameType.FIRERED_LEAFGREEN)
    assert match is not None and match.id == 'aurora_ticket_frlg_engusa'
    assert manager.find_ticket_by_gift_card(bytes(record), GameType.EMERALD) is None
    assert manager.find_ticket_by_gift_card(_card_record(1, 'OTHER'), GameType.FIRERED_LEAFGREEN) is None


def test_missing_folder(tmp_path):
    with pytest.raises(TicketError):
        TicketManager().load_from_folder(tmp_path / 'missing')


def test_empty_folder(tmp_path, crc_table):
    (tmp_path / 'tab.bin').write_bytes(crc_table)
    with pytest.raises(TicketError):
        TicketManager().load_from_folder(tmp_path)
