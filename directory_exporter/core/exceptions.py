# directory_exporter/core/exceptions.py

class ConfigurationError(Exception):
    """Raised when the exporter cannot start because its configuration is unusable."""


class InvalidPatternError(ConfigurationError):
    """Raised when an include/exclude pattern is not a valid regular expression."""
    def __init__(self, pattern: str, directory: str, reason: str):
        self.pattern = pattern
        self.directory = directory
        self.reason = reason
        super().__init__(
            f"Invalid pattern '{pattern}' for directory '{directory}': {reason}"
        )
