"""
confbind.binder
---------------

The recursive descent that fills a dataclass target from a config document.

For each field, in declaration order:

1.  Nested dataclass fields are descended into, with the matching document
    section or, when the document has none, an empty one. The empty descent
    is what lets ``api.apikey`` come purely from the environment when the
    file has no ``api`` section at all. An empty section (``api:`` parsing to
    ``null``) is treated the same way; a section holding a scalar or list is
    skipped.
2.  Other fields ask the ``EnvResolver`` for an override of their dotted
    path. A hit is converted with ``coerce_env`` and ends the field.
3.  Otherwise the document value under the field's key, if any, is converted
    with ``coerce_document``. Values that do not fit are skipped.

The walk is not transactional: when an environment value fails to convert,
fields handled earlier keep their new values.
"""

import dataclasses
import logging
from typing import Any, Mapping, Optional, Tuple

from .coerce import FieldKind, UNSET, coerce_document, coerce_env
from .env import EnvResolver
from .exceptions import InvalidTarget
from .provenance import ProvenanceStore
from .schema import FieldSpec, field_specs

log = logging.getLogger(__name__)


def _check_target(target: Any) -> None:
    if target is None or isinstance(target, type) or not dataclasses.is_dataclass(target):
        raise InvalidTarget(target)
    if type(target).__dataclass_params__.frozen:
        raise InvalidTarget(target, "frozen dataclasses cannot be populated in place")


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _nested_target(target: Any, spec: FieldSpec) -> Any:
    current = getattr(target, spec.name, None)
    if isinstance(current, spec.struct_type):
        return current
    try:
        fresh = spec.struct_type()
    except TypeError as e:
        raise InvalidTarget(current, f"cannot create {spec.struct_type.__name__} for field '{spec.name}': {e}") from e
    setattr(target, spec.name, fresh)
    return fresh


def _target_specs(target: Any) -> Tuple[FieldSpec, ...]:
    try:
        return field_specs(type(target))
    except (NameError, TypeError) as e:
        raise InvalidTarget(target, f"cannot resolve field types of {type(target).__name__}: {e}") from e


def bind(document: Mapping[str, Any],
         target: Any,
         resolver: EnvResolver,
         prefix: str = "",
         provenance: Optional[ProvenanceStore] = None,
         file_path: Optional[str] = None) -> None:
    """
    Populate ``target`` in place from ``document`` and the environment.

    Args:
        document: Normalized (lower-cased keys) document section for ``target``.
        target: A dataclass instance.
        resolver: Environment override lookup.
        prefix: Dotted path of ``target`` within the whole document ("" at the root).
        provenance: Optional store recording where each assigned value came from.
        file_path: Config file the document was read from, for provenance.

    Raises:
        InvalidTarget: If ``target`` (or a nested field) is not a usable dataclass
            instance, or its field annotations cannot be resolved.
        CoercionError: If an environment value does not parse as the field's type.
    """
    _check_target(target)

    for spec in _target_specs(target):
        path = _join(prefix, spec.key)

        if spec.kind is FieldKind.STRUCT:
            section = document.get(spec.key)
            if section is None:
                log.debug(f"DEBUG [confbind.bind]: No section '{path}' in document, descending for env overrides.")
                section = {}
            elif not isinstance(section, Mapping):
                log.debug(f"DEBUG [confbind.bind]: Skipping '{path}': expected a mapping, got {type(section).__name__}.")
                continue
            bind(section, _nested_target(target, spec), resolver, path, provenance, file_path)
            continue

        hit = resolver.lookup(path)
        if hit is not None:
            env_var, raw = hit
            value = coerce_env(raw, spec.kind, spec.elem_kind, key=path, env_var=env_var)
            setattr(target, spec.name, value)
            if provenance is not None:
                provenance.record_env(path, value, env_var)
            continue

        if spec.key not in document:
            continue

        value = coerce_document(document[spec.key], spec.kind, spec.elem_kind)
        if value is UNSET:
            log.debug(f"DEBUG [confbind.bind]: Document value for '{path}' does not fit {spec.kind.value}, skipped.")
            continue
        setattr(target, spec.name, value)
        if provenance is not None:
            provenance.record_file(path, value, file_path)
