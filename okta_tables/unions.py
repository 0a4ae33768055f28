"""Polymorphic payload resolution.

Okta list endpoints return structurally different records from one endpoint:
policies vary by `type`, factors by `factorType`, applications by
`signOnMode`. A `UnionFamily` declares the closed set of variants it knows,
how to project each into flat row fields, and falls back to the
`UNKNOWN_VARIANT` sentinel for anything else.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, TypeVar

logger = logging.getLogger("okta_tables.unions")

T = TypeVar("T")

_MISSING = object()


def value_or(value: Optional[T], default: T) -> T:
    """Unwrap an optional value, substituting `default` for None."""
    return default if value is None else value


def dig(raw: Any, path: str, default: Any = None) -> Any:
    """Follow a dotted path through nested dicts, e.g. "profile.login"."""
    current = raw
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return default
        current = current.get(part, _MISSING)
        if current is _MISSING:
            return default
    return value_or(current, default)


@dataclass(frozen=True)
class Variant:
    tag: str
    # column name -> dotted path in the raw item
    fields: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedItem:
    tag: Optional[str]
    fields: Mapping[str, Any]

    @property
    def known(self) -> bool:
        return self.tag is not None

    @property
    def identity(self) -> Any:
        return self.fields.get("id")


UNKNOWN_VARIANT = ResolvedItem(tag=None, fields=MappingProxyType({}))


@dataclass(frozen=True)
class UnionFamily:
    name: str
    variants: tuple[Variant, ...]
    common_fields: Mapping[str, str] = field(default_factory=dict)
    discriminant: Optional[str] = None
    identity_path: str = "id"

    def __post_init__(self) -> None:
        if self.discriminant is None and len(self.variants) != 1:
            raise ValueError(
                f"family {self.name!r} has no discriminant and must declare exactly one variant"
            )

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(v.tag for v in self.variants)

    def variant(self, tag: Any) -> Optional[Variant]:
        for v in self.variants:
            if v.tag == tag:
                return v
        return None

    def resolve(self, raw: Any) -> ResolvedItem:
        """Project a raw item into row fields; UNKNOWN_VARIANT if it can't be."""
        if not isinstance(raw, Mapping):
            return UNKNOWN_VARIANT

        if self.discriminant is None:
            variant = self.variants[0]
        else:
            variant = self.variant(dig(raw, self.discriminant))
        if variant is None:
            return UNKNOWN_VARIANT

        identity = dig(raw, self.identity_path)
        if identity in (None, ""):
            logger.debug("Item of %s/%s has no identity", self.name, variant.tag)
            return UNKNOWN_VARIANT

        fields = {"id": identity}
        for column, path in self.common_fields.items():
            fields[column] = dig(raw, path)
        for column, path in variant.fields.items():
            fields[column] = dig(raw, path)
        return ResolvedItem(tag=variant.tag, fields=MappingProxyType(fields))
