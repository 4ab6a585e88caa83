import argparse
import sys
from pathlib import Path
from gift.crc16 import load_crc_table
from gift.giftcard import GiftCardType
from gift.tickets import DEFAULT_CRC_TABLE_NAME, TicketManager
from resources import ROM_DATABASE_PATH, SCRIPT_COMMANDS_PATH, SCRIPT_DATA_PATH
from rom.romdatabase import RomDatabase
from rom.romloader import load_rom_file
from save.gametype import GameType
from save.savefile import InjectionOptions, SaveFile
from script.scriptdisassembler import ScriptDisassembler
from script.scriptsymbols import ScriptSymbols

GAME_CHOICES = {'frlg': GameType.FIRERED_LEAFGREEN, 'emerald': GameType.EMERALD}

def _load_rom(args):
    return load_rom_file(args.rom, RomDatabase.load_yaml(args.db))

def _output_path(args, default: str) -> Path:
    return Path(args.output) if args.output else Path(default)

def cmd_identify(args) -> int:
    rom = _load_rom(args)
    print(f'Version:     {rom.version.display_name} [{rom.version_name}]')
    print(f'Game code:   {rom.game_code()}')
    print(f'Title:       {rom.game_title()}')
    print(f"Name tables: {('yes' if rom.has_name_tables else 'no')}")
    print(f"Icons:       {('yes' if rom.version.sprites.has_icons else 'no')}")
    return 0

def cmd_icon(args) -> int:
    rom = _load_rom(args)
    icon = rom.extract_pokemon_icon(args.species) if args.raw_index else rom.extract_species_icon(args.species)
    if icon is None:
        print(f'[main] No icon available for {args.species} on {rom.version_name}')
        return 1
    out = _output_path(args, f'icon_{args.species}.png')
    icon.save(out)
    print(f'[main] Wrote {out}')
    return 0

def cmd_font(args) -> int:
    rom = _load_rom(args)
    font = rom.extract_font_by_index(args.index)
    if font is None:
        return 1
    out = _output_path(args, f'font_{args.index}.png')
    font.save(out)
    print(f'[main] Wrote {out}')
    return 0

def cmd_background(args) -> int:
    rom = _load_rom(args)
    out = _output_path(args, f'wondercard_{args.index}.png')
    rom.render_wonder_card_background(args.index).save(out)
    print(f'[main] Wrote {out}')
    return 0

def cmd_names(args) -> int:
    rom = _load_rom(args)
    lookup = {'item': rom.get_item_name, 'species': rom.get_species_name, 'move': rom.get_move_name}[args.kind]
    for value in args.ids:
        print(f'{value}: {lookup(value) or "(none)"}')
    return 0

def cmd_save_info(args) -> int:
    save = SaveFile.load_file(args.save)
    print(f'Game:          {save.game_type.value}')
    print(f'Active slot:   {save.active_slot}')
    for info in save.slots:
        state = 'valid' if info.valid else f'bad sections {info.bad_sections}'
        print(f'Slot {info.slot}:        counter {info.save_index}, {state}')
    if save.game_type in (GameType.FIRERED_LEAFGREEN, GameType.EMERALD):
        print(f"Gift card:     {('present' if save.has_wonder_card() else 'empty')}")
        print(f"Mystery Gift:  {('enabled' if save.is_mystery_gift_enabled() else 'disabled')}")
    return 0

def cmd_extract_card(args) -> int:
    save = SaveFile.load_file(args.save)
    card = save.extract_gift_card()
    print(f'Event ID: {card.event_id}  Icon: {card.icon}  Count: {card.count}')
    kind = GiftCardType(card.card_type).name if card.card_type < len(GiftCardType) else str(card.card_type)
    print(f'Type: {kind}  Color: {card.color}  Resend: {card.can_resend}')
    print(f'Title:    {card.title.rstrip()}')
    print(f'Subtitle: {card.subtitle.rstrip()}')
    for line in card.content_lines():
        if line:
            print(f'  {line.rstrip()}')
    if args.output:
        Path(args.output).write_bytes(save.extract_gift_card_raw())
        print(f'[main] Wrote {args.output}')
    if args.script:
        Path(args.script).write_bytes(save.extract_script())
        print(f'[main] Wrote {args.script}')
    return 0

def cmd_inject(args) -> int:
    save = SaveFile.load_file(args.save)
    card_path = Path(args.card)
    card = card_path.read_bytes()
    script = Path(args.script).read_bytes() if args.script else None
    crc_table = load_crc_table(args.crc_table or card_path.parent / DEFAULT_CRC_TABLE_NAME)
    options = InjectionOptions(clear_metadata=not args.keep_metadata, clear_trainer_ids=args.clear_trainer_ids)
    save.inject_gift_card(None, crc_table, script_data=script, raw_card_data=card, options=options)
    if args.enable_gift:
        save.enable_mystery_gift()
    save.save_to_file(args.output, make_backup=not args.no_backup)
    return 0

def cmd_enable_gift(args) -> int:
    save = SaveFile.load_file(args.save)
    save.set_mystery_gift_enabled(not args.disable)
    save.save_to_file(args.output, make_backup=not args.no_backup)
    return 0

def cmd_disasm(args) -> int:
    symbols = ScriptSymbols.load(args.commands, args.script_data)
    rom = _load_rom(args) if args.rom else None
    if args.from_save:
        data = SaveFile.load_file(args.input).extract_script()
        ram = True
    else:
        data = Path(args.input).read_bytes()
        ram = args.ramscript
    disassembler = ScriptDisassembler(symbols, rom)
    options = dict(show_comments=not args.no_comments, show_bytes=not args.no_bytes, show_offsets=not args.no_offsets)
    text = disassembler.disassemble_ram_script(data, **options) if ram else disassembler.disassemble(data, **options)
    if args.output:
        Path(args.output).write_text(text + '\n', encoding='utf-8')
        print(f'[main] Wrote {args.output}')
    else:
        print(text)
    return 0

def cmd_tickets(args) -> int:
    manager = TicketManager()
    manager.load_from_folder(args.folder, args.crc_table)
    tickets = manager.tickets_for_game(GAME_CHOICES[args.game]) if args.game else manager.tickets
    if not args.save:
        for ticket in tickets:
            print(f'{ticket.id:<40} {ticket.name}')
            if ticket.description:
                print(f'    {ticket.description}')
        return 0
    save = SaveFile.load_file(args.save)
    ticket = manager.find_ticket_by_id(args.ticket or '')
    if ticket is None:
        print(f'[main] ERROR: unknown ticket {args.ticket!r}')
        return 1
    if ticket.game_type != save.game_type:
        print(f'[main] ERROR: {ticket.name} is for {ticket.game_type.value}, save is {save.game_type.value}')
        return 1
    manager.ensure_loaded(ticket)
    save.inject_gift_card(None, manager.crc_table, script_data=ticket.script_data, raw_card_data=ticket.card_data)
    save.enable_mystery_gift()
    save.save_to_file(args.output, make_backup=not args.no_backup)
    return 0

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Inspect Gen 3 ROMs, edit Mystery Gift data in saves and disassemble gift scripts', formatter_class=argparse.RawDescriptionHelpFormatter, epilog='\nExamples:\n  %(prog)s identify firered.gba\n  %(prog)s save-info game.sav\n  %(prog)s inject game.sav Aurora_Ticket_FRLG_WonderCard.bin --script Aurora_Ticket_FRLG_Script.bin --crc-table tab.bin\n  %(prog)s disasm game.sav --from-save --rom firered.gba\n        ')
    parser.add_argument('--db', default=str(ROM_DATABASE_PATH), help='ROM database YAML')
    parser.add_argument('--commands', default=str(SCRIPT_COMMANDS_PATH), help='Script command definitions YAML')
    parser.add_argument('--script-data', default=str(SCRIPT_DATA_PATH), help='Script symbol tables YAML')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('identify', help='Identify a ROM by MD5')
    p.add_argument('rom')
    p.set_defaults(func=cmd_identify)

    p = sub.add_parser('icon', help='Export a Pokemon icon as PNG')
    p.add_argument('rom')
    p.add_argument('species', type=int)
    p.add_argument('--raw-index', action='store_true', help='Treat the number as an icon table index')
    p.add_argument('-o', '--output')
    p.set_defaults(func=cmd_icon)

    p = sub.add_parser('font', help='Export a font sheet as PNG')
    p.add_argument('rom')
    p.add_argument('--index', type=int, default=3)
    p.add_argument('-o', '--output')
    p.set_defaults(func=cmd_font)

    p = sub.add_parser('background', help='Render a gift card background as PNG')
    p.add_argument('rom')
    p.add_argument('index', type=int)
    p.add_argument('-o', '--output')
    p.set_defaults(func=cmd_background)

    p = sub.add_parser('names', help='Look up item, species or move names')
    p.add_argument('rom')
    p.add_argument('kind', choices=['item', 'species', 'move'])
    p.add_argument('ids', type=int, nargs='+')
    p.set_defaults(func=cmd_names)

    p = sub.add_parser('save-info', help='Show save slots and gift state')
    p.add_argument('save')
    p.set_defaults(func=cmd_save_info)

    p = sub.add_parser('extract-card', help='Show or dump the stored gift card')
    p.add_argument('save')
    p.add_argument('-o', '--output', help='Write the 336-byte card record')
    p.add_argument('--script', help='Write the 1000-byte script payload')
    p.set_defaults(func=cmd_extract_card)

    p = sub.add_parser('inject', help='Write a gift card (and script) into a save')
    p.add_argument('save')
    p.add_argument('card', help='332 or 336 byte card file')
    p.add_argument('--script', help='1000 or 1004 byte script file')
    p.add_argument('--crc-table', help='512-byte CRC table (default: tab.bin next to the card)')
    p.add_argument('--keep-metadata', action='store_true', help='Leave the gift metadata block untouched')
    p.add_argument('--clear-trainer-ids', action='store_true', help='Zero the stored trainer id list')
    p.add_argument('--enable-gift', action='store_true', help='Also set the Mystery Gift flag')
    p.add_argument('-o', '--output')
    p.add_argument('--no-backup', action='store_true')
    p.set_defaults(func=cmd_inject)

    p = sub.add_parser('enable-gift', help='Turn the Mystery Gift menu on or off')
    p.add_argument('save')
    p.add_argument('--disable', action='store_true')
    p.add_argument('-o', '--output')
    p.add_argument('--no-backup', action='store_true')
    p.set_defaults(func=cmd_enable_gift)

    p = sub.add_parser('disasm', help='Disassemble a Mystery Event script')
    p.add_argument('input', help='Script binary, or a save with --from-save')
    p.add_argument('--from-save', action='store_true', help='Read the script stored in a save')
    p.add_argument('--ramscript', action='store_true', help='Input starts with the 4-byte RamScript header')
    p.add_argument('--rom', help='ROM used to resolve item, species and move names')
    p.add_argument('--no-comments', action='store_true')
    p.add_argument('--no-bytes', action='store_true')
    p.add_argument('--no-offsets', action='store_true')
    p.add_argument('-o', '--output')
    p.set_defaults(func=cmd_disasm)

    p = sub.add_parser('tickets', help='List event tickets or inject one into a save')
    p.add_argument('folder')
    p.add_argument('--crc-table', help='CRC table (default: tab.bin in the folder)')
    p.add_argument('--game', choices=sorted(GAME_CHOICES))
    p.add_argument('--save', help='Inject the chosen ticket into this save')
    p.add_argument('--ticket', help='Ticket id to inject')
    p.add_argument('-o', '--output')
    p.add_argument('--no-backup', action='store_true')
    p.set_defaults(func=cmd_tickets)
    return parser

def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (ValueError, OSError) as e:
        print(f'[main] ERROR: {e}')
        return 1
if __name__ == '__main__':
    sys.exit(main())
