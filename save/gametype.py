from enum import Enum

class GameType(Enum):
    UNKNOWN = 'Unknown'
    RUBY_SAPPHIRE = 'Pokémon Ruby/Sapphire'
    FIRERED_LEAFGREEN = 'Pokémon FireRed/LeafGreen'
    EMERALD = 'Pokémon Emerald'

    @property
    def short_name(self) -> str:
        return GAME_SHORT_NAMES[self]

GAME_SHORT_NAMES = {GameType.UNKNOWN: 'Unknown', GameType.RUBY_SAPPHIRE: 'RS', GameType.FIRERED_LEAFGREEN: 'FRLG', GameType.EMERALD: 'Emerald'}
