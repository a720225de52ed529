from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Literal

AccessorKind = Literal["none", "getter", "setter", "constructor"]


@dataclass(slots=True, frozen=True)
class ParameterMetadata:
    name: str
    type_name: str


@dataclass(slots=True, frozen=True)
class MethodMetadata:
    name: str
    return_type: str
    is_public: bool
    accessor: AccessorKind = "none"
    parameters: tuple[ParameterMetadata, ...] = ()
    # Deferred signature decoding: (return_type, parameters)
    loader: Callable[[], tuple[str, tuple[ParameterMetadata, ...]]] | None = field(
        default=None, repr=False, compare=False
    )

    def resolve(self) -> MethodMetadata:
        if self.loader is None:
            return self
        return_type, parameters = self.loader()
        return replace(self, return_type=return_type, parameters=parameters, loader=None)


@dataclass(slots=True, frozen=True)
class FieldMetadata:
    name: str
    type_name: str
    is_public: bool
    loader: Callable[[], str] | None = field(default=None, repr=False, compare=False)

    @property
    def is_backing_field(self) -> bool:
        return "k__BackingField" in self.name

    def resolve(self) -> FieldMetadata:
        if self.loader is None:
            return self
        return replace(self, type_name=self.loader(), loader=None)


@dataclass(slots=True, frozen=True)
class TypeMetadata:
    namespace: str
    name: str
    full_name: str
    is_public: bool
    fields: tuple[FieldMetadata, ...] = ()
    methods: tuple[MethodMetadata, ...] = ()

    @property
    def is_generated(self) -> bool:
        """Compiler-generated types carry a leading '<' in their name."""
        return self.name.startswith("<")


@dataclass(slots=True, frozen=True)
class ModuleMetadata:
    name: str
    types: tuple[TypeMetadata, ...] = ()


@dataclass(slots=True, frozen=True)
class AssemblyMetadata:
    name: str
    modules: tuple[ModuleMetadata, ...] = ()


@dataclass(slots=True, frozen=True)
class ReportNode:
    """
    One element of the export document.

    Attributes are kept as ordered pairs so serialization is deterministic.
    """

    tag: str
    attributes: tuple[tuple[str, str], ...] = ()
    children: tuple[ReportNode, ...] = field(default_factory=tuple)

    def attr(self, name: str) -> str | None:
        for key, value in self.attributes:
            if key == name:
                return value
        return None

    def find_all(self, tag: str) -> list[ReportNode]:
        return [c for c in self.children if c.tag == tag]
