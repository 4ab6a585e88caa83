from typing import List

class SaveError(ValueError):
    pass

class SaveSizeInvalid(SaveError):
    pass

class ChecksumMismatch(SaveError):

    def __init__(self, slot: int, bad_sections: List[int]):
        self.slot = slot
        self.bad_sections = list(bad_sections)
        ids = ', '.join((str(s) for s in self.bad_sections))
        super().__init__(f'Checksum mismatch in slot {slot}, logical sections: {ids}')

class SectionNotFound(SaveError):
    pass

class UnsupportedGame(SaveError):
    pass
