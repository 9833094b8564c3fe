"""
confbind.normalize
------------------

Key normalization for parsed config documents.

Every mapping key is lower-cased so that document lookups are
case-insensitive: ``baseUrl``, ``BaseURL`` and ``baseurl`` all end up as
``baseurl``. Values are left alone, only mapping keys are folded.
"""

import logging
from typing import Any, Dict, List, Union

log = logging.getLogger(__name__)


def normalize_keys(data: Union[Dict, List, Any]) -> Union[Dict, List, Any]:
    """
    Recursively lower-case every mapping key of a parsed document *in-place*.

    Mappings nested inside sequences are normalized too. When two keys of the
    same mapping fold to the same name, the one iterated last wins.

    Args:
        data: A parsed document (usually a dict). Scalars are returned untouched.

    Returns:
        The same object that was passed in, for convenience.
    """
    if isinstance(data, dict):
        # Snapshot items because the dict is rebuilt below
        items = list(data.items())
        data.clear()
        for key, value in items:
            folded = str(key).lower()
            if folded in data:
                log.warning(f"Config key '{key}' collides with an existing key after case folding; last value wins.")
            data[folded] = normalize_keys(value)
    elif isinstance(data, list):
        for item in data:
            normalize_keys(item)
    return data
