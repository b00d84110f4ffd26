# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Export markers and field metadata providers.

Fields opt into a projection with a marker.  Two declarative forms are
understood by the default provider::

    @dataclass
    class Order:
        id: Annotated[int, Export()]
        total: Annotated[float, Export()]
        notes: str = ""                                  # not exported
        lines: list[Line] = exported(default_factory=list)
        secret: Annotated[str, Export(exclude=True)] = ""  # explicitly excluded

Types that cannot be annotated are registered on a
:class:`MappingMetadataProvider` instead::

    provider = MappingMetadataProvider()
    provider.register(ThirdPartyUser, include=["id", "name"], types={"id": int, "name": str})
"""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Protocol, get_args, get_origin, get_type_hints, runtime_checkable

from pyprojector.kernel.exceptions import SchemaError

_METADATA_KEY = "pyprojector"


@dataclass(frozen=True)
class Export:
    """Marks a field for inclusion in projections.

    ``Export(exclude=True)`` keeps the declaration visible while
    overriding inclusion, e.g. in a subclass.
    """

    exclude: bool = False


@dataclass(frozen=True)
class Exclude:
    """Overrides any inclusion marker on the same field."""


def exported(*, exclude: bool = False, **field_kwargs: Any) -> Any:
    """``dataclasses.field`` wrapper that marks the field for export."""
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    metadata[_METADATA_KEY] = Export(exclude=exclude)
    return dataclasses.field(metadata=metadata, **field_kwargs)


def excluded(**field_kwargs: Any) -> Any:
    """``dataclasses.field`` wrapper that excludes the field from export."""
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    metadata[_METADATA_KEY] = Exclude()
    return dataclasses.field(metadata=metadata, **field_kwargs)


@dataclass(frozen=True)
class FieldMarker:
    """What a metadata provider knows about one declared field."""

    name: str
    declared_type: Any
    include: bool
    exclude: bool = False

    @property
    def exported(self) -> bool:
        return self.include and not self.exclude


@runtime_checkable
class FieldMetadataProvider(Protocol):
    """Answers "is field F included / excluded" for an entity type.

    Markers are returned in declaration order.
    """

    def markers(self, entity_type: type) -> list[FieldMarker]: ...


def _type_hints(entity_type: type, *, include_extras: bool) -> dict[str, Any]:
    try:
        return get_type_hints(entity_type, include_extras=include_extras)
    except (NameError, TypeError) as exc:
        raise SchemaError(
            f"Cannot resolve type hints of {entity_type.__qualname__}: {exc}",
            context={"entity_type": entity_type.__qualname__},
        ) from exc


class AnnotationMetadataProvider:
    """Reads ``Annotated[..., Export()]`` hints and ``exported()`` field metadata."""

    def markers(self, entity_type: type) -> list[FieldMarker]:
        hints = _type_hints(entity_type, include_extras=True)
        field_metadata: dict[str, Any] = {}
        if dataclasses.is_dataclass(entity_type):
            field_metadata = {f.name: f.metadata.get(_METADATA_KEY) for f in dataclasses.fields(entity_type)}

        markers: list[FieldMarker] = []
        for name, hint in hints.items():
            declared, extras = hint, ()
            if get_origin(hint) is Annotated:
                declared, *rest = get_args(hint)
                extras = tuple(rest)
            if get_origin(declared) is ClassVar:
                continue

            found = [m for m in (*extras, field_metadata.get(name)) if isinstance(m, (Export, Exclude))]
            if not found:
                continue
            markers.append(
                FieldMarker(
                    name=name,
                    declared_type=declared,
                    include=any(isinstance(m, Export) for m in found),
                    exclude=any(isinstance(m, Exclude) or m.exclude for m in found),
                )
            )
        return markers


class MappingMetadataProvider:
    """Explicit per-type export registrations, for types you cannot annotate.

    Types without a registration are delegated to *fallback* (annotation
    markers by default).  Register during startup, before projections run.

    A registered field takes its type from *types* when given, otherwise
    from the class's type hints.  Nested entities must be typed one way or
    the other, or they could not be told apart from scalars::

        provider.register(Address, include=["city"], types={"city": str})
        provider.register(Person, include=["name", "address"],
                          types={"name": str, "address": Address})
    """

    def __init__(self, fallback: FieldMetadataProvider | None = None) -> None:
        self._fallback = fallback if fallback is not None else AnnotationMetadataProvider()
        self._registrations: dict[type, _Registration] = {}
        self._lock = threading.Lock()

    def register(
        self,
        entity_type: type,
        *,
        include: Iterable[str],
        exclude: Iterable[str] = (),
        types: Mapping[str, Any] | None = None,
    ) -> None:
        """Export *include* fields of *entity_type*, minus *exclude*, in the given order.

        Raises:
            SchemaError: If *types* names a field that is not in *include*.
        """
        registration = _Registration(tuple(include), frozenset(exclude), dict(types or {}))
        stray = [name for name in registration.types if name not in registration.include]
        if stray:
            raise SchemaError(
                f"Types declared for fields not registered on {entity_type.__qualname__}: {', '.join(stray)}",
                context={"entity_type": entity_type.__qualname__, "fields": stray},
            )
        with self._lock:
            self._registrations[entity_type] = registration

    def markers(self, entity_type: type) -> list[FieldMarker]:
        registration = self._registrations.get(entity_type)
        if registration is None:
            return self._fallback.markers(entity_type)

        hints = _type_hints(entity_type, include_extras=False)
        markers: list[FieldMarker] = []
        for name in registration.include:
            excluded_name = name in registration.exclude
            if name in registration.types:
                declared = registration.types[name]
            elif name in hints:
                declared = hints[name]
            elif excluded_name:
                declared = Any
            else:
                raise SchemaError(
                    f"Field '{entity_type.__qualname__}.{name}' is registered for export but has no "
                    f"type hint; declare it with register(..., types={{'{name}': ...}})",
                    context={"entity_type": entity_type.__qualname__, "field": name},
                )
            markers.append(FieldMarker(name=name, declared_type=declared, include=True, exclude=excluded_name))
        return markers


@dataclass(frozen=True)
class _Registration:
    include: tuple[str, ...]
    exclude: frozenset[str]
    types: dict[str, Any]
