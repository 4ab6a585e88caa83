from save.saveerrors import SaveError, SaveSizeInvalid, ChecksumMismatch, SectionNotFound, UnsupportedGame
from save.gametype import GameType
from save.savefile import SaveFile, SlotInfo, InjectionOptions, compute_section_checksum, section_checksum_length
__all__ = ['SaveError', 'SaveSizeInvalid', 'ChecksumMismatch', 'SectionNotFound', 'UnsupportedGame', 'SaveFile', 'GameType', 'SlotInfo', 'InjectionOptions', 'compute_section_checksum', 'section_checksum_length']
