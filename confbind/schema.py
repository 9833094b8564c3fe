"""
confbind.schema
---------------

Field tables for dataclass targets.

A target is any dataclass. Each field gets a ``FieldSpec`` describing the
document key it maps to and how its value is converted::

    @dataclass
    class AppConfig:
        allowed_origins: list[str] = setting(key="allowed_origins", default_factory=list)

    @dataclass
    class HttpConfig:
        port: uint = 0
        debug: bool = False

``uint`` marks an unsigned integer field; plain ``int`` is signed.
"""

import dataclasses
import functools
import types
import typing
from dataclasses import dataclass
from typing import Annotated, Any, Optional, Tuple

from .coerce import FieldKind, SCALAR_KINDS

KEY_METADATA = "key"


class Unsigned:
    """Marker placed in ``Annotated[int, Unsigned]`` for unsigned fields."""


uint = Annotated[int, Unsigned]


def setting(*, key: Optional[str] = None, **kwargs) -> Any:
    """
    ``dataclasses.field`` with an explicit document key.

    Args:
        key: Document key for the field; defaults to the lower-cased field name.
        **kwargs: Passed to ``dataclasses.field`` (default, default_factory, ...).
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    if key is not None:
        metadata[KEY_METADATA] = key
    return dataclasses.field(metadata=metadata, **kwargs)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    key: str
    kind: FieldKind
    elem_kind: Optional[FieldKind] = None
    struct_type: Optional[type] = None


def _scalar_kind(annotation: Any) -> Optional[FieldKind]:
    if typing.get_origin(annotation) is Annotated:
        base, *extras = typing.get_args(annotation)
        if base is int and any(e is Unsigned or isinstance(e, Unsigned) for e in extras):
            return FieldKind.UINT
        return _scalar_kind(base)
    # bool first: it is an int subclass
    if annotation is bool:
        return FieldKind.BOOL
    if annotation is int:
        return FieldKind.INT
    if annotation is str:
        return FieldKind.STRING
    return None


def _strip_optional(annotation: Any) -> Any:
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _field_spec(name: str, key: str, annotation: Any) -> Optional[FieldSpec]:
    annotation = _strip_optional(annotation)
    kind = _scalar_kind(annotation)
    if kind is not None:
        return FieldSpec(name, key, kind)

    if isinstance(annotation, type) and dataclasses.is_dataclass(annotation):
        return FieldSpec(name, key, FieldKind.STRUCT, struct_type=annotation)

    if typing.get_origin(annotation) in (list, typing.List):
        args = typing.get_args(annotation)
        elem_kind = _scalar_kind(args[0]) if args else None
        if elem_kind in SCALAR_KINDS:
            return FieldSpec(name, key, FieldKind.SEQUENCE, elem_kind=elem_kind)

    return None


@functools.lru_cache(maxsize=None)
def field_specs(cls: type) -> Tuple[FieldSpec, ...]:
    """
    Build (and cache) the field table of a dataclass, in declaration order.

    Private fields (leading underscore) and fields of unsupported types are
    left out.
    """
    hints = typing.get_type_hints(cls, include_extras=True)
    specs = []
    for f in dataclasses.fields(cls):
        if f.name.startswith("_"):
            continue
        key = (f.metadata.get(KEY_METADATA) or f.name).lower()
        spec = _field_spec(f.name, key, hints.get(f.name, f.type))
        if spec is not None:
            specs.append(spec)
    return tuple(specs)
