import struct
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple
from gift.giftcard import parse_ram_script_header
from gift.textcodec import decode_script_string
from script.scriptsymbols import ScriptSymbols

OP_END = 0x02
OP_CALL = 0x04
OP_GOTO = 0x05
OP_GOTO_IF = 0x06
OP_CALL_IF = 0x07
OP_GOTOSTD = 0x08
OP_CALLSTD = 0x09
OP_SPECIAL = 0x25
OP_SETFLAG = 0x29
OP_CLEARFLAG = 0x2A
OP_CHECKFLAG = 0x2B
OP_SETVADDRESS = 0xB8
OP_VGOTO = 0xB9
OP_VCALL = 0xBA
OP_VGOTO_IF = 0xBB
OP_VCALL_IF = 0xBC
OP_VMESSAGE = 0xBD
CONDITION_OPS = (OP_GOTO_IF, OP_CALL_IF, OP_VGOTO_IF, OP_VCALL_IF)
STD_OPS = (0x08, 0x09, 0x0A, 0x0B)
ITEM_COMMENT_OPS = (0x44, 0x45, 0x46, 0x47)
FLAG_VERBS = {OP_SETFLAG: 'Sets {} to TRUE', OP_CLEARFLAG: 'Sets {} to FALSE', OP_CHECKFLAG: 'Checks {}'}
ROM_ADDRESS_MIN = 0x08000000
VARIABLE_MIN = 0x4000
MAX_BYTES_SHOWN = 8
PREVIEW_LENGTH = 50

WORD_DECIMAL_POLICY: Dict[Tuple[int, int], Optional[int]] = {
    (0x44, 1): None, (0x45, 1): None, (0x46, 1): None, (0x47, 1): None, (0x49, 1): None, (0x4A, 1): None,
    (0x1A, 1): VARIABLE_MIN - 1,
    (0x1C, 1): 255, (0x1F, 1): 255, (0x21, 1): 255,
}

def word_is_decimal(opcode: int, arg_index: int, value: int) -> bool:
    key = (opcode, arg_index)
    if key not in WORD_DECIMAL_POLICY:
        return False
    limit = WORD_DECIMAL_POLICY[key]
    return limit is None or value <= limit

@dataclass
class ScriptInstruction:
    offset: int
    opcode: int
    name: str
    args: List[int] = field(default_factory=list)
    arg_types: List[str] = field(default_factory=list)
    raw: bytes = b''
    label: str = ''
    comment: str = ''

@dataclass
class EmbeddedString:
    vaddr: int
    offset: int
    text: str

class ScriptDisassembler:

    def __init__(self, symbols: ScriptSymbols, rom=None):
        self.symbols = symbols
        self.rom = rom
        self.base: Optional[int] = None
        self.labels: Dict[int, str] = {}
        self.instructions: List[ScriptInstruction] = []
        self.flags_found: Set[int] = set()
        self.flags_unknown: Set[int] = set()
        self._data = b''

    @property
    def _rom_names(self) -> bool:
        return self.rom is not None and self.rom.has_name_tables

    def parse_arguments(self, data: bytes, pos: int, fmt: str) -> Tuple[List[int], List[str], int]:
        start = pos
        args: List[int] = []
        types: List[str] = []
        for c in fmt:
            if pos >= len(data):
                break
            if c == 'b':
                args.append(data[pos])
                types.append(c)
                pos += 1
            elif c == 'd':
                if pos + 3 < len(data):
                    args.append(struct.unpack_from('<I', data, pos)[0])
                    types.append(c)
                    pos += 4
            elif pos + 1 < len(data):
                args.append(struct.unpack_from('<H', data, pos)[0])
                types.append(c)
                pos += 2
        return (args, types, pos - start)

    def format_arg(self, value: int, arg_type: str, index: int, opcode: int) -> str:
        sym = self.symbols
        if arg_type == 'b':
            if opcode in CONDITION_OPS and index == 0:
                return sym.conditions.get(value, f'0x{value:02x}')
            if opcode in STD_OPS and index == 0:
                return sym.std_scripts.get(value, f'STD_{value}')
            return str(value)
        if arg_type == 'v':
            if value >= VARIABLE_MIN:
                return sym.variables.get(value, f'VAR_0x{value:04x}')
            return str(value)
        if arg_type == 'f':
            return sym.flags.get(value, f'FLAG_0x{value:04X}')
        if arg_type == 'i':
            name = self.rom.get_item_name(value) if self._rom_names else ''
            return f'ITEM_{name} (0x{value:04x})' if name else f'ITEM_0x{value:04X}'
        if arg_type == 'p':
            name = self.rom.get_species_name(value) if self._rom_names else ''
            return f'SPECIES_{name.upper()} ({value})' if name else f'SPECIES_{value}'
        if arg_type == 'M':
            name = self.rom.get_move_name(value) if self._rom_names else ''
            return f"MOVE_{name.upper().replace(' ', '_')} ({value})" if name else f'MOVE_{value}'
        if arg_type == 'w':
            return str(value) if word_is_decimal(opcode, index, value) else f'0x{value:04x}'
        if arg_type == 'd':
            return f'0x{value:08x}'
        return str(value)

    def read_embedded_string(self, vaddr: int) -> str:
        if self.base is None or not self._data:
            return ''
        offset = vaddr - self.base
        if offset < 0 or offset >= len(self._data):
            return ''
        return decode_script_string(self._data, offset, placeholders=self.symbols.var_placeholders)

    def generate_comment(self, opcode: int, args: List[int]) -> str:
        command = self.symbols.commands.get(opcode)
        if command is None:
            return 'Unknown command'
        extras: List[str] = []
        if opcode in CONDITION_OPS and args:
            extras.append(f"Condition: {self.symbols.condition_descs.get(args[0], 'unknown')}")
        elif opcode in (OP_GOTOSTD, OP_CALLSTD) and args:
            name = self.symbols.std_scripts.get(args[0])
            if name:
                extras.append(f'-> {name}')
        elif opcode == OP_SPECIAL and args:
            name = self.symbols.specials.get(args[0])
            if name:
                extras.append(f'-> {name}')
        elif opcode in FLAG_VERBS and args:
            name = self.symbols.flags.get(args[0])
            if name:
                extras.append(FLAG_VERBS[opcode].format(name))
                self.flags_found.add(args[0])
            else:
                self.flags_unknown.add(args[0])
        elif opcode in ITEM_COMMENT_OPS and args and self._rom_names:
            name = self.rom.get_item_name(args[0])
            if name:
                extras.append(f'Item: {name}')
        elif opcode == OP_VMESSAGE and args and self.base is not None:
            text = self.read_embedded_string(args[0])
            if text:
                preview = text[:PREVIEW_LENGTH].replace('\n', ' ').strip()
                if len(text) > PREVIEW_LENGTH:
                    preview += '...'
                extras.append(f'Text: "{preview}"')
                extras.append(f'(offset 0x{args[0] - self.base:X} in data)')
        elif opcode == OP_SETVADDRESS:
            extras.append('IMPORTANT: Sets base address for virtual commands in RAM scripts')
        if extras:
            return ' | '.join([command.desc] + extras)
        return command.desc

    def _walk(self, data: bytes):
        offset = 0
        while offset < len(data):
            opcode = data[offset]
            if opcode == OP_END:
                return
            command = self.symbols.commands.get(opcode)
            if command is None:
                offset += 1
                continue
            args, _, length = self.parse_arguments(data, offset + 1, command.args)
            yield (offset, opcode, args)
            offset += 1 + length

    def infer_base_address(self, data: bytes) -> Optional[int]:
        self.base = None
        for offset, opcode, args in self._walk(data):
            if opcode == OP_SETVADDRESS and args and args[0] >= ROM_ADDRESS_MIN:
                self.base = args[0] - offset
                break
        return self.base

    def _virtual_to_offset(self, vaddr: int) -> Optional[int]:
        if self.base is None or vaddr < self.base:
            return None
        return vaddr - self.base

    def find_jump_targets(self, data: bytes) -> Dict[int, str]:
        self.labels = {}
        for _, opcode, args in self._walk(data):
            target = None
            if opcode in (OP_CALL, OP_GOTO) and args:
                target = args[-1]
            elif opcode in (OP_VGOTO, OP_VCALL) and args:
                target = self._virtual_to_offset(args[-1])
            elif opcode in (OP_GOTO_IF, OP_CALL_IF) and len(args) >= 2:
                target = args[-1]
            elif opcode in (OP_VGOTO_IF, OP_VCALL_IF) and len(args) >= 2:
                target = self._virtual_to_offset(args[-1])
            if target is not None and target < len(data) and target not in self.labels:
                self.labels[target] = f'label_{len(self.labels)}'
        return self.labels

    def decode(self, data: bytes) -> List[ScriptInstruction]:
        self._data = bytes(data)
        self.instructions = []
        self.flags_found = set()
        self.flags_unknown = set()
        self.infer_base_address(self._data)
        self.find_jump_targets(self._data)
        offset = 0
        while offset < len(self._data):
            opcode = self._data[offset]
            label = self.labels.get(offset, '')
            if opcode == OP_END:
                self.instructions.append(ScriptInstruction(offset, opcode, 'end', raw=self._data[offset:offset + 1], label=label, comment='Terminates script execution'))
                break
            command = self.symbols.commands.get(opcode)
            if command is None:
                self.instructions.append(ScriptInstruction(offset, opcode, 'db', [opcode], ['b'], self._data[offset:offset + 1], label, f'Unknown opcode 0x{opcode:02x}'))
                offset += 1
                continue
            args, types, length = self.parse_arguments(self._data, offset + 1, command.args)
            self.instructions.append(ScriptInstruction(offset, opcode, command.name, args, types, self._data[offset:offset + 1 + length], label, self.generate_comment(opcode, args)))
            offset += 1 + length
        return self.instructions

    def find_embedded_strings(self) -> List[EmbeddedString]:
        found: List[EmbeddedString] = []
        seen: Set[int] = set()
        for instr in self.instructions:
            if instr.opcode != OP_VMESSAGE or not instr.args or instr.args[0] in seen:
                continue
            vaddr = instr.args[0]
            seen.add(vaddr)
            text = self.read_embedded_string(vaddr)
            if text:
                found.append(EmbeddedString(vaddr, vaddr - self.base, text))
        return sorted(found, key=lambda s: s.offset)

    def format_instruction(self, instr: ScriptInstruction, show_comments: bool=True, show_bytes: bool=True, show_offsets: bool=True) -> str:
        line = ''
        if show_offsets:
            line += f'  {instr.offset:04x}:'
        if show_bytes:
            hex_bytes = ''.join((f'{b:02X} ' for b in instr.raw[:MAX_BYTES_SHOWN]))
            line += f'  {hex_bytes:<24}'
        args = ', '.join((self.format_arg(v, t, i, instr.opcode) for i, (v, t) in enumerate(zip(instr.args, instr.arg_types))))
        line += f'  {instr.name:<20} {args}'
        if show_comments and instr.comment:
            line += f' # {instr.comment}'
        return line

    def _header(self) -> List[str]:
        lines = ['; Pokemon Gen 3 Mystery Event Script Disassembly']
        if self.rom is not None:
            lines.append(f'; ROM: {self.rom.version.display_name}')
        if self.base is not None:
            lines.append(f'; Inferred virtual base address: 0x{self.base:08x}')
        lines.append(f'; Total instructions: {len(self.instructions)}')
        lines.append(f'; Labels found: {len(self.labels)}')
        lines.append(f'; Flags resolved: {len(self.flags_found)}')
        if self.flags_unknown:
            lines.append(f'; Unknown flags: {len(self.flags_unknown)}')
        lines += [';', '; Legend:', ';   VAR_0x4xxx = Script variables (0x4000-0x40xx)', ';   FLAG_0xxxx = Game flags', ';   @label_N   = Jump/call target', ';   STD_xxx    = Standard script ID']
        if self._rom_names:
            lines += [';   ITEM_xxx   = Item name from ROM', ';   SPECIES_xxx = Pokemon species from ROM', ';   MOVE_xxx   = Move name from ROM']
        lines += ['', '.script_start:']
        return lines

    def disassemble(self, data: bytes, show_comments: bool=True, show_bytes: bool=True, show_offsets: bool=True) -> str:
        if not self.symbols.commands:
            return '; ERROR: Command definitions not loaded\n'
        self.decode(data)
        output = self._header()
        for instr in self.instructions:
            if instr.label:
                output.append(f'\n{instr.label}:')
            output.append(self.format_instruction(instr, show_comments, show_bytes, show_offsets))
        output.append('\n.script_end')
        strings = self.find_embedded_strings() if self.base is not None else []
        if strings:
            output += ['', '; =========================================', '; EMBEDDED STRINGS', '; =========================================']
            for es in strings:
                output.append(';')
                output.append(f'; Address 0x{es.vaddr:08x} (offset 0x{es.offset:02x}):')
                output += [f';   "{line}"' for line in es.text.split('\n') if line]
        return '\n'.join(output)

    def disassemble_ram_script(self, data: bytes, show_comments: bool=True, show_bytes: bool=True, show_offsets: bool=True) -> str:
        if len(data) < 4:
            return '; ERROR: Data too small for RamScript\n'
        header = parse_ram_script_header(data)
        output = ['; =========================================', '; RamScriptData Header', '; =========================================', f";   Magic: 0x{header.magic:02x} ({('valid' if header.is_valid else 'INVALID')})", f';   Map Group: {header.map_group} (0x{header.map_group:02x})', f';   Map Num: {header.map_num} (0x{header.map_num:02x})', f';   Object ID: {header.object_id} (0x{header.object_id:02x})', ';']
        output.append(self.disassemble(data[4:], show_comments, show_bytes, show_offsets))
        return '\n'.join(output)
