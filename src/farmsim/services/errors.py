"""Service-layer exceptions."""


class SaveLoadError(Exception):
    """Raised when save or load operations fail."""


class CorruptSaveDataError(SaveLoadError):
    """Raised when a save payload fails structural validation."""


class UnsupportedFormatVersionError(SaveLoadError):
    """Raised when a save was written by an incompatible format version."""


class SlotNotFoundError(SaveLoadError):
    """Raised when a requested save slot does not exist."""
