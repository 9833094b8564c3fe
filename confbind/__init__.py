# confbind/__init__.py
"""
confbind – Decode YAML/TOML/JSON config files into dataclasses, with
environment variable overrides.

Create a ``Decoder`` (or use the module-level functions, which operate on a
default instance), point it at a config file, and decode into a dataclass::

    import confbind

    confbind.set_config_name("application")
    confbind.set_config_type("yaml")
    confbind.add_config_path(".")
    confbind.automatic_env(confbind.Replacer(".", "_"))
    confbind.read_in_config()

    cfg = Config()
    confbind.unmarshal(cfg)
"""

from .env import EnvResolver, Replacer
from .exceptions import (
    CoercionError,
    ConfbindError,
    ConfigFileError,
    ConfigFileNotFound,
    ConfigNameNotSet,
    ConfigParseError,
    InvalidTarget,
    UnsupportedConfigType,
)
from .loader import (
    Decoder,
    add_config_path,
    automatic_env,
    bind_env,
    decode,
    default_decoder,
    get,
    read_in_config,
    reset,
    set_config_name,
    set_config_type,
    set_env_key_replacer,
    unmarshal,
)
from .normalize import normalize_keys
from .schema import Unsigned, setting, uint

__version__ = "0.1.0"
