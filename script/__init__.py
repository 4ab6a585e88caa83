from script.scriptsymbols import CommandDef, ScriptSymbols
from script.scriptdisassembler import EmbeddedString, ScriptDisassembler, ScriptInstruction, WORD_DECIMAL_POLICY, word_is_decimal
__all__ = ['CommandDef', 'ScriptSymbols', 'EmbeddedString', 'ScriptDisassembler', 'ScriptInstruction', 'WORD_DECIMAL_POLICY', 'word_is_decimal']
