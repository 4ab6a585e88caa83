class RomError(ValueError):
    pass

class RomSizeInvalid(RomError):
    pass

class IdentificationFailed(RomError):
    pass

class OffsetOutOfRange(RomError):
    pass

class CompressionFormatError(RomError):
    pass

class RomDatabaseError(RomError):
    pass

class TileSizeInvalid(RomError):
    pass
