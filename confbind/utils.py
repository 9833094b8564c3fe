"""
confbind.utils
--------------

Shared helpers for paths, raw config text and dotted lookups.
Used internally by confbind and available for downstream consumers.
"""

import os
import re
from typing import Any, Mapping, Optional


def expand_path(path: Optional[str]) -> Optional[str]:
    """Expand ~ and environment variables in a path string.

    Examples:
        >>> expand_path("~/configs")
        '/home/user/configs'
        >>> expand_path("$HOME/.config/app")
        '/home/user/.config/app'
        >>> expand_path(None)
        None
    """
    if path is None:
        return None
    return os.path.expandvars(os.path.expanduser(path))


_ENV_REFERENCE = re.compile(r"\$(?:\{(?P<braced>[^}]+)\}|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))")


def expand_env_text(text: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Substitute ``$VAR`` and ``${VAR}`` references in raw config text.

    Variables are read from ``environ`` (``os.environ`` when omitted).
    References to unset variables are left as they are.

    Examples:
        >>> expand_env_text("url: ${DB_HOST}/app", {"DB_HOST": "db"})
        'url: db/app'
        >>> expand_env_text("key: $MISSING", {})
        'key: $MISSING'
    """
    if environ is None:
        environ = os.environ

    def _substitute(match):
        name = match.group("braced") or match.group("bare")
        value = environ.get(name)
        return match.group(0) if value is None else value

    return _ENV_REFERENCE.sub(_substitute, text)


def get_by_dot(data: Mapping, key: str) -> Any:
    """
    Retrieve a nested value from a mapping using a dotted key.

    Raises:
        KeyError: If any part of the key path does not exist, or an
            intermediate value is not a mapping.
    """
    d = data
    walked = []
    for part in key.split('.'):
        if not isinstance(d, Mapping) or part not in d:
            found_path = '.'.join(walked)
            raise KeyError(f"Key path '{key}' not found (missing part: '{part}' at path '{found_path}')")
        walked.append(part)
        d = d[part]
    return d
