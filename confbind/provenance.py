# confbind/provenance.py
"""
confbind.provenance
-------------------

Optional record of where decoded values came from.

When enabled via ``Decoder(track_provenance=True)``, each decode call opens a
new numbered round and the binder reports every field it assigns, either
from an environment variable or from the config document. Afterwards the
store answers "why is ``http.port`` 9091?" (``$HTTP_PORT``, decode #2) and
"which keys did the environment override last time?".

Thread-safety:
    - The store is written only while a decode call runs on its decoder.
    - Entries are frozen dataclasses and safe to share once decode returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ENV = "env"
FILE = "file"


@dataclass(frozen=True)
class ProvenanceEntry:
    """One assignment made by a decode call.

    Attributes:
        key: Dotted key path of the field (e.g. ``"db.url"``).
        value: The converted value assigned to the field.
        origin: ``"env"`` or ``"file"``.
        detail: The variable name for env values; the config file path for
            file values (``None`` when the document was not read from a file).
        decode: Number of the decode call that made the assignment, from 1.
    """

    key: str
    value: Any
    origin: str
    detail: str | None
    decode: int

    @property
    def env_var(self) -> str | None:
        return self.detail if self.origin == ENV else None

    @property
    def source(self) -> str:
        """``env:<VAR>``, ``file:<path>`` or plain ``file``."""
        return f"{self.origin}:{self.detail}" if self.detail else self.origin

    def __repr__(self) -> str:
        where = f"${self.detail}" if self.origin == ENV else (self.detail or "document")
        return f"{self.key} = {self.value!r} ({where}, decode #{self.decode})"


@dataclass
class ProvenanceStore:
    """Assignments grouped by decode call.

    Only the latest entry per key is "current"; earlier decodes of the same
    key are kept as history.
    """

    _decodes: int = 0
    _current: dict[str, ProvenanceEntry] = field(default_factory=dict)
    _history: dict[str, list[ProvenanceEntry]] = field(default_factory=dict)

    @property
    def decodes(self) -> int:
        return self._decodes

    def begin_decode(self) -> int:
        """Open the next decode round and return its number."""
        self._decodes += 1
        return self._decodes

    def _record(self, key: str, value: Any, origin: str, detail: str | None) -> None:
        if self._decodes == 0:
            self.begin_decode()
        entry = ProvenanceEntry(key=key, value=value, origin=origin, detail=detail, decode=self._decodes)
        self._history.setdefault(key, []).append(entry)
        self._current[key] = entry

    def record_env(self, key: str, value: Any, env_var: str) -> None:
        self._record(key, value, ENV, env_var)

    def record_file(self, key: str, value: Any, path: str | None = None) -> None:
        self._record(key, value, FILE, path)

    def get(self, key: str) -> ProvenanceEntry | None:
        return self._current.get(key)

    def get_history(self, key: str) -> list[ProvenanceEntry]:
        """Every assignment of ``key``, oldest decode first."""
        return list(self._history.get(key, []))

    def last_decode(self) -> dict[str, ProvenanceEntry]:
        """Entries assigned by the most recent decode call, keyed by dotted path."""
        return {k: e for k, e in self._current.items() if e.decode == self._decodes}

    def env_overrides(self) -> dict[str, str]:
        """Dotted key -> variable name for fields the last decode took from the environment."""
        return {k: e.detail for k, e in self.last_decode().items() if e.origin == ENV}

    def clear(self) -> None:
        self._decodes = 0
        self._current.clear()
        self._history.clear()
