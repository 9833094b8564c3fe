"""
confbind.env
------------

Environment variable resolution for dotted config keys.

Two mechanisms can map a key such as ``db.url`` to an environment variable:

1.  **Explicit bindings** registered with ``bind_env("db.url", "DATABASE_URL")``.
    A bound variable that is set, even to an empty string, always wins.
2.  **Automatic mapping**, switched on with ``automatic_env()``. The key is
    upper-cased and passed through the key transform (for example a
    ``Replacer(".", "_")`` turning ``DB.URL`` into ``DB_URL``). Only a set,
    non-empty variable counts.

Keys not covered by either mechanism fall back to the config document.
"""

import os
import re
import logging
from typing import Callable, Dict, Mapping, Optional, Tuple, Union

log = logging.getLogger(__name__)

KeyTransform = Callable[[str], str]


class Replacer:
    """
    Replace several substrings in a single left-to-right pass.

    Arguments are ``old, new`` pairs. At each position of the input the first
    pair (in argument order) whose ``old`` matches is applied, and replaced
    text is never scanned again::

        >>> Replacer(".", "_", "-", "_")("HTTP.MAX-CONNS")
        'HTTP_MAX_CONNS'
    """

    def __init__(self, *pairs: str):
        if len(pairs) % 2:
            raise ValueError("Replacer needs an even number of arguments (old, new pairs)")
        olds = pairs[0::2]
        if any(old == "" for old in olds):
            raise ValueError("Replacer cannot replace an empty string")
        self._table: Dict[str, str] = {}
        for old, new in zip(olds, pairs[1::2]):
            # First pair wins, like the alternation order below
            self._table.setdefault(old, new)
        self._pattern = re.compile("|".join(re.escape(old) for old in olds)) if olds else None

    def __call__(self, text: str) -> str:
        if self._pattern is None:
            return text
        return self._pattern.sub(lambda m: self._table[m.group(0)], text)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{old!r}->{new!r}" for old, new in self._table.items())
        return f"Replacer({pairs})"


class EnvResolver:
    """
    Decides whether an environment variable overrides a dotted config key.

    Holds the binding table (lower-cased dotted key -> variable name), the
    automatic-env switch and the optional key transform. Setup calls are meant
    to happen before any decode; lookups only read this state.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        # None means "read os.environ at lookup time"
        self._environ = environ
        self._bindings: Dict[str, str] = {}
        self._automatic = False
        self._transform: Optional[KeyTransform] = None

    # --- Setup ---
    def bind_env(self, key: str, env_var: str) -> None:
        """Bind the dotted ``key`` to the environment variable ``env_var``."""
        if not key:
            raise ValueError("bind_env requires a non-empty key")
        self._bindings[key.lower()] = env_var
        log.debug(f"DEBUG [confbind.bind_env]: Bound key '{key.lower()}' to ${env_var}")

    def automatic_env(self, transform: Optional[Union[KeyTransform, Replacer]] = None) -> None:
        """Switch on automatic env mapping, optionally setting the key transform."""
        self._automatic = True
        if transform is not None:
            self.set_env_key_replacer(transform)

    def set_env_key_replacer(self, transform: Optional[Union[KeyTransform, Replacer]]) -> None:
        """Set the transform applied to upper-cased keys by automatic mapping."""
        if transform is not None and not callable(transform):
            raise TypeError(f"Env key transform must be callable, got {type(transform).__name__}")
        self._transform = transform

    @property
    def bindings(self) -> Dict[str, str]:
        return dict(self._bindings)

    @property
    def automatic(self) -> bool:
        return self._automatic

    @property
    def environ(self) -> Mapping[str, str]:
        """The variables lookups read: the injected mapping, else ``os.environ``."""
        return os.environ if self._environ is None else self._environ

    # --- Lookup ---
    def _getenv(self, name: str) -> Optional[str]:
        return self.environ.get(name)

    def automatic_name(self, key: str) -> str:
        name = key.upper()
        if self._transform is not None:
            name = self._transform(name)
        return name

    def env_name(self, key: str) -> Optional[str]:
        """Name of the variable that would be consulted for ``key``, if any."""
        key = key.lower()
        if key in self._bindings:
            return self._bindings[key]
        if self._automatic:
            return self.automatic_name(key)
        return None

    def lookup(self, key: str) -> Optional[Tuple[str, str]]:
        """
        Find the environment override for a dotted key.

        Returns:
            ``(variable_name, value)`` when an override applies, else ``None``.
        """
        key = key.lower()

        bound = self._bindings.get(key)
        if bound is not None:
            value = self._getenv(bound)
            if value is not None:
                log.debug(f"DEBUG [confbind.lookup]: '{key}' resolved from bound ${bound}")
                return bound, value
            # Bound but unset: automatic mapping is not consulted
            return None

        if self._automatic:
            name = self.automatic_name(key)
            value = self._getenv(name)
            if value:
                log.debug(f"DEBUG [confbind.lookup]: '{key}' resolved from automatic ${name}")
                return name, value

        return None

    def resolve(self, key: str) -> Optional[str]:
        """Return the raw environment value overriding ``key``, or ``None``."""
        hit = self.lookup(key)
        return hit[1] if hit is not None else None
