"""
confbind.exceptions
-------------------

Custom exceptions for confbind.
"""


class ConfbindError(Exception):
    """Base class for every error raised by confbind."""


class InvalidTarget(ConfbindError, TypeError):
    """
    Raised when decode is called with something other than a dataclass instance.
    """

    def __init__(self, target, reason=None):
        kind = type(target).__name__ if target is not None else "None"
        message = f"Decode target must be a dataclass instance, got {kind}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.target = target


class CoercionError(ConfbindError, ValueError):
    """
    Raised when an environment value cannot be parsed into the field's type.
    """

    def __init__(self, value, kind, key=None, env_var=None, reason=None):
        where = f" for key '{key}'" if key else ""
        source = f" (from ${env_var})" if env_var else ""
        detail = f": {reason}" if reason else ""
        super().__init__(f"Cannot parse {value!r} as {kind}{where}{source}{detail}")
        self.value = value
        self.kind = kind
        self.key = key
        self.env_var = env_var


class ConfigFileError(ConfbindError):
    """Base class for errors locating, reading or parsing the config file."""


class ConfigNameNotSet(ConfigFileError):
    def __init__(self):
        super().__init__("Config name not set")


class ConfigFileNotFound(ConfigFileError, FileNotFoundError):
    def __init__(self, filename, searched):
        super().__init__(f"Config file not found: {filename} (searched: {', '.join(searched) or 'no paths'})")
        self.config_file = filename
        self.searched = list(searched)


class UnsupportedConfigType(ConfigFileError, ValueError):
    def __init__(self, config_type):
        super().__init__(f"Unsupported config type: {config_type!r}")
        self.config_type = config_type


class ConfigParseError(ConfigFileError):
    """
    Raised when the config text cannot be parsed, or does not hold a mapping.
    """
