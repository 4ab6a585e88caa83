from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union
import yaml

VALID_ARG_TYPES = set('bwipMvfd')

@dataclass
class CommandDef:
    name: str
    args: str = ''
    desc: str = ''

@dataclass
class ScriptSymbols:
    commands: Dict[int, CommandDef] = field(default_factory=dict)
    conditions: Dict[int, str] = field(default_factory=dict)
    condition_descs: Dict[int, str] = field(default_factory=dict)
    std_scripts: Dict[int, str] = field(default_factory=dict)
    variables: Dict[int, str] = field(default_factory=dict)
    flags: Dict[int, str] = field(default_factory=dict)
    specials: Dict[int, str] = field(default_factory=dict)
    var_placeholders: Dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_dicts(cls, commands_doc: Optional[Dict], data_doc: Optional[Dict]=None) -> 'ScriptSymbols':
        symbols = cls()
        for opcode, entry in ((commands_doc or {}).get('commands') or {}).items():
            code = _key(opcode)
            args = str(entry.get('args') or '')
            bad = set(args) - VALID_ARG_TYPES
            if bad:
                raise ValueError(f"Command 0x{code:02X} has unknown argument types {''.join(sorted(bad))!r}")
            symbols.commands[code] = CommandDef(name=str(entry['name']), args=args, desc=str(entry.get('desc') or ''))
        data_doc = data_doc or {}
        for code, entry in (data_doc.get('conditions') or {}).items():
            symbols.conditions[_key(code)] = str(entry.get('symbol', ''))
            if entry.get('desc'):
                symbols.condition_descs[_key(code)] = str(entry['desc'])
        symbols.std_scripts = _name_map(data_doc.get('std_scripts'))
        symbols.variables = _name_map(data_doc.get('variables'))
        symbols.flags = _name_map(data_doc.get('flags'))
        symbols.specials = _name_map(data_doc.get('specials'))
        symbols.var_placeholders = _name_map(data_doc.get('var_placeholders'))
        return symbols

    @classmethod
    def load(cls, commands_path: Union[str, Path], data_path: Optional[Union[str, Path]]=None) -> 'ScriptSymbols':
        commands_doc = _read_yaml(commands_path)
        data_doc = _read_yaml(data_path) if data_path else {}
        symbols = cls.from_dicts(commands_doc, data_doc)
        if not symbols.commands:
            raise ValueError(f'No commands parsed from {Path(commands_path).name}')
        print(f'[ScriptSymbols] Loaded {len(symbols.commands)} commands, {len(symbols.flags)} flags, {len(symbols.variables)} variables')
        return symbols

def _key(value: Any) -> int:
    return value if isinstance(value, int) else int(str(value), 0)

def _name_map(section: Optional[Dict]) -> Dict[int, str]:
    return {_key(k): str(v) for k, v in (section or {}).items()}

def _read_yaml(path: Union[str, Path]) -> Dict:
    with open(path, 'r', encoding='utf-8') as f:
        doc = yaml.safe_load(f)
    return doc or {}
