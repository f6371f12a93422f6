class WatchStatusError(Exception):
    """Base class for watch status errors."""


class InvalidStatusError(WatchStatusError, ValueError):
    """A status value that is not valid for the level it targets."""
    
    def __init__(self, level, value):
        self.level = level
        self.value = value
        super().__init__(f"Invalid {level} status: {value!r}")


class UnknownLevelError(WatchStatusError, ValueError):
    """A content level the status store does not track."""
    
    def __init__(self, level):
        self.level = level
        super().__init__(f"Unknown content level: {level!r}")
