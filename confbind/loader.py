"""
confbind.loader
---------------

The ``Decoder``: finds and parses a config file, then decodes it into
dataclass targets with environment variable overrides.

Typical use::

    decoder = Decoder()
    decoder.set_config_name("application")
    decoder.set_config_type("yaml")
    decoder.add_config_path(".")
    decoder.set_env_key_replacer(Replacer(".", "_"))
    decoder.automatic_env()
    decoder.bind_env("db.url", "DATABASE_URL")
    decoder.read_in_config()

    cfg = Config()
    decoder.decode(cfg)

Value precedence per field (highest first):
1.  **Explicit binding**: the variable registered with ``bind_env`` for the
    field's dotted key, when set (an empty value still counts).
2.  **Automatic env**: ``transform(KEY.UPPER())`` when automatic mapping is
    on and the variable is non-empty.
3.  **Config file**: the document value, matched case-insensitively.

Setup calls (``bind_env``, ``automatic_env``, ...) are expected to finish
before decoding starts. Once they have, one decoder may serve concurrent
decode calls into distinct targets.
"""

import os
import copy
import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import yaml
from dotenv import find_dotenv, load_dotenv

try:
    import tomllib
except ImportError:  # Python < 3.11
    import tomli as tomllib

from .binder import bind
from .env import EnvResolver, Replacer
from .exceptions import (
    ConfigFileNotFound,
    ConfigNameNotSet,
    ConfigParseError,
    UnsupportedConfigType,
)
from .normalize import normalize_keys
from .provenance import ProvenanceEntry, ProvenanceStore
from .utils import expand_env_text, expand_path, get_by_dot

log = logging.getLogger(__name__)

SUPPORTED_TYPES = ("yaml", "yml", "toml", "json")


def parse_document(text: str, config_type: str) -> dict:
    """
    Parse raw config text of the given type into a plain dict.

    An empty document yields ``{}``.

    Raises:
        UnsupportedConfigType: For types other than yaml, yml, toml and json.
        ConfigParseError: If the text does not parse or is not a mapping.
    """
    config_type = (config_type or "").lower()
    try:
        if config_type in ("yaml", "yml"):
            content = yaml.safe_load(text)
        elif config_type == "toml":
            content = tomllib.loads(text)
        elif config_type == "json":
            content = json.loads(text) if text.strip() else None
        else:
            raise UnsupportedConfigType(config_type)
    except (yaml.YAMLError, tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
        raise ConfigParseError(f"Failed to parse {config_type}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigParseError(f"Config document must be a mapping, got {type(content).__name__}")
    return content


class Decoder:
    """
    Loads one config document and decodes it into dataclass targets.

    Args:
        load_dotenv_file: Load a ``.env`` file into ``os.environ`` before the
            config file is read (existing variables are not overridden).
        dotenv_path: Explicit ``.env`` path; searched from the cwd upwards if omitted.
        track_provenance: Record the source of every value assigned by ``decode``.
        environ: Mapping to read variables from instead of ``os.environ``.
    """

    def __init__(self,
                 load_dotenv_file: bool = False,
                 dotenv_path: Optional[str] = None,
                 track_provenance: bool = False,
                 environ: Optional[Mapping[str, str]] = None):
        self._config_name = ""
        self._config_type = ""
        self._config_paths: List[str] = []
        self._config_file: Optional[str] = None
        self._document: dict = {}
        self._resolver = EnvResolver(environ)
        self._load_dotenv = load_dotenv_file
        self._dotenv_path = dotenv_path
        self._provenance = ProvenanceStore() if track_provenance else None

    # --- File setup ---
    def set_config_name(self, name: str) -> None:
        """Config file name without extension (e.g. ``"application"``)."""
        self._config_name = name

    def set_config_type(self, config_type: str) -> None:
        """Config format: ``yaml``, ``yml``, ``toml`` or ``json``."""
        self._config_type = config_type.lower()

    def add_config_path(self, path: str) -> None:
        """Add a directory to search; directories are searched in insertion order."""
        self._config_paths.append(path)

    # --- Environment setup ---
    def set_env_key_replacer(self, transform: Optional[Union[Callable[[str], str], Replacer]]) -> None:
        """Transform applied to upper-cased keys by automatic env mapping."""
        self._resolver.set_env_key_replacer(transform)

    def automatic_env(self, transform: Optional[Union[Callable[[str], str], Replacer]] = None) -> None:
        """Let environment variables named after config keys override file values."""
        self._resolver.automatic_env(transform)

    def bind_env(self, key: str, env_var: str) -> None:
        """Bind a dotted config key (e.g. ``"db.url"``) to a specific variable."""
        self._resolver.bind_env(key, env_var)

    @property
    def resolver(self) -> EnvResolver:
        return self._resolver

    # --- Loading ---
    def _load_dotenv_file(self) -> None:
        """Loads .env file into os.environ."""
        try:
            dotenv_file = self._dotenv_path or find_dotenv(usecwd=True)
            if dotenv_file and os.path.exists(dotenv_file):
                loaded = load_dotenv(dotenv_path=dotenv_file, override=False)
                log.debug(f"DEBUG [confbind._load_dotenv_file]: .env file {dotenv_file} loaded={loaded}.")
            elif self._dotenv_path:
                log.warning(f"Warning: .env file not found at {self._dotenv_path}.")
        except OSError as e:
            log.warning(f"Warning: Failed during .env file loading (path: {self._dotenv_path or 'auto'}): {e}")

    def find_config_file(self) -> str:
        """
        Return the first ``<path>/<name>.<type>`` that exists.

        Raises:
            ConfigNameNotSet: If no config name was set.
            UnsupportedConfigType: If the config type is not supported.
            ConfigFileNotFound: If no search path holds the file.
        """
        if not self._config_name:
            raise ConfigNameNotSet()
        if self._config_type not in SUPPORTED_TYPES:
            raise UnsupportedConfigType(self._config_type)

        filename = f"{self._config_name}.{self._config_type}"
        searched = []
        for path in self._config_paths:
            candidate = os.path.join(expand_path(path), filename)
            searched.append(candidate)
            if os.path.isfile(candidate):
                return candidate
        raise ConfigFileNotFound(filename, searched)

    def read_in_config(self) -> str:
        """
        Find, read and parse the config file, replacing the current document.

        ``$VAR`` / ``${VAR}`` references in the file are expanded before parsing.

        Returns:
            Path of the file that was loaded.
        """
        if self._load_dotenv:
            self._load_dotenv_file()

        config_file = self.find_config_file()
        try:
            with open(config_file, mode='r', encoding='utf-8') as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigParseError(f"Failed to read config file {config_file}: {e}") from e

        self._document = self._parse(text)
        self._config_file = config_file
        log.debug(f"DEBUG [confbind.read_in_config]: Loaded {config_file} with top-level keys {sorted(self._document)}")
        return config_file

    def read_config(self, text: str) -> None:
        """Parse in-memory config text of the configured type, replacing the current document."""
        self._document = self._parse(text)
        self._config_file = None

    def _parse(self, text: str) -> dict:
        # ${VAR} references read the same variables as the overrides do
        expanded = expand_env_text(text, self._resolver.environ)
        return normalize_keys(parse_document(expanded, self._config_type))

    def set_document(self, document: Mapping[str, Any]) -> None:
        """Install an already parsed document (deep-copied and normalized)."""
        self._document = normalize_keys(copy.deepcopy(dict(document)))
        self._config_file = None

    @property
    def document(self) -> dict:
        return copy.deepcopy(self._document)

    @property
    def config_file_used(self) -> Optional[str]:
        return self._config_file

    # --- Decoding ---
    def decode(self, target: Any) -> None:
        """
        Populate the dataclass instance ``target`` in place.

        Raises:
            InvalidTarget: If ``target`` is not a dataclass instance.
            CoercionError: If an environment value does not parse for its field.
                Fields decoded before the failure keep their new values.
        """
        if self._provenance is not None:
            self._provenance.begin_decode()
        bind(self._document, target, self._resolver, provenance=self._provenance, file_path=self._config_file)

    unmarshal = decode

    def get(self, key: str, default: Any = None) -> Any:
        """
        Effective value for a dotted key: the raw environment override if one
        applies, else the document value, else ``default``.
        """
        key = key.lower()
        override = self._resolver.resolve(key)
        if override is not None:
            return override
        try:
            return copy.deepcopy(get_by_dot(self._document, key))
        except KeyError:
            return default

    # --- Provenance ---
    def provenance(self, key: str) -> Optional[ProvenanceEntry]:
        """Where the last decoded value of ``key`` came from (tracking must be on)."""
        if self._provenance is None:
            return None
        return self._provenance.get(key.lower())

    def provenance_history(self, key: str) -> List[ProvenanceEntry]:
        if self._provenance is None:
            return []
        return self._provenance.get_history(key.lower())

    def env_overrides(self) -> Dict[str, str]:
        """Dotted key -> variable name for every field the last decode took from the environment."""
        if self._provenance is None:
            return {}
        return self._provenance.env_overrides()

    def provenance_dump(self) -> str:
        """One line per key assigned by the last decode, sorted by key."""
        if self._provenance is None:
            return "Provenance tracking is disabled."
        entries = self._provenance.last_decode()
        return "\n".join(repr(entries[k]) for k in sorted(entries))


# --- Default instance ---

_default = Decoder()


def default_decoder() -> Decoder:
    return _default


def reset() -> None:
    """Replace the default instance with a fresh one (mainly for tests)."""
    global _default
    _default = Decoder()


def set_config_name(name: str) -> None:
    _default.set_config_name(name)


def set_config_type(config_type: str) -> None:
    _default.set_config_type(config_type)


def add_config_path(path: str) -> None:
    _default.add_config_path(path)


def set_env_key_replacer(transform) -> None:
    _default.set_env_key_replacer(transform)


def automatic_env(transform=None) -> None:
    _default.automatic_env(transform)


def bind_env(key: str, env_var: str) -> None:
    _default.bind_env(key, env_var)


def read_in_config() -> str:
    return _default.read_in_config()


def decode(target: Any) -> None:
    _default.decode(target)


unmarshal = decode


def get(key: str, default: Any = None) -> Any:
    return _default.get(key, default)
