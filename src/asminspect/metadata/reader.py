"""
Metadata source backed by dnfile.

Opens a .NET PE image and produces the in-memory graph the export core
consumes. Only the metadata tables are read; method bodies are never touched.
"""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Any

import dnfile
import pefile

from asminspect.export.errors import InvalidAssemblyFormat
from asminspect.export.models import (
    AccessorKind,
    AssemblyMetadata,
    FieldMetadata,
    MethodMetadata,
    ModuleMetadata,
    ParameterMetadata,
    TypeMetadata,
)

from .signatures import GenericContext, SignatureDecoder

CONSTRUCTOR_NAMES = frozenset({".ctor", ".cctor"})


def _text(value: Any) -> str:
    """Heap strings come back either as str or as a HeapItemString wrapper."""
    value = getattr(value, "value", value)
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _blob(value: Any) -> bytes:
    value = getattr(value, "value", value)
    return bytes(value) if value else b""


class MetadataGraphBuilder:
    """
    Builds AssemblyMetadata from dnfile metadata tables.

    Field and method signatures are not decoded here: each member carries a
    loader that ExportService calls once the member passes its filter.
    The builder also serves as the type-name resolver for the signature decoder.
    """

    def __init__(self, tables: Any, *, fallback_name: str) -> None:
        self._tables = tables
        self._fallback_name = fallback_name
        self._type_defs = self._rows("TypeDef")
        self._type_refs = self._rows("TypeRef")
        self._type_specs = self._rows("TypeSpec")
        self._enclosing = {
            r.NestedClass.row_index: r.EnclosingClass.row_index
            for r in self._rows("NestedClass")
        }
        self._accessors = self._collect_accessors()
        self._generic_params = self._collect_generic_params()
        self._decoder = SignatureDecoder(self)

    def build(self) -> AssemblyMetadata:
        assembly_rows = self._rows("Assembly")
        module_rows = self._rows("Module")

        name = _text(assembly_rows[0].Name) if assembly_rows else ""
        module_name = _text(module_rows[0].Name) if module_rows else ""

        types = tuple(
            self._type(index, row) for index, row in enumerate(self._type_defs, start=1)
        )

        module = ModuleMetadata(name=module_name or self._fallback_name, types=types)
        return AssemblyMetadata(name=name or self._fallback_name, modules=(module,))

    # --- TypeNameResolver ---

    def type_def_name(self, index: int) -> str:
        row = self._type_defs[index - 1]
        name = _text(row.TypeName)
        if index in self._enclosing:
            return f"{self.type_def_name(self._enclosing[index])}/{name}"
        namespace = _text(row.TypeNamespace)
        return f"{namespace}.{name}" if namespace else name

    def type_ref_name(self, index: int) -> str:
        row = self._type_refs[index - 1]
        name = _text(row.TypeName)
        scope = row.ResolutionScope
        table = getattr(scope, "table", None)
        if scope is not None and getattr(table, "name", table) == "TypeRef":
            return f"{self.type_ref_name(scope.row_index)}/{name}"
        namespace = _text(row.TypeNamespace)
        return f"{namespace}.{name}" if namespace else name

    def type_spec_blob(self, index: int) -> bytes:
        return _blob(self._type_specs[index - 1].Signature)

    # --- Private Helpers ---

    def _rows(self, table_name: str) -> list[Any]:
        table = getattr(self._tables, table_name, None)
        if table is None:
            return []
        return list(table.rows)

    def _collect_accessors(self) -> dict[int, AccessorKind]:
        accessors: dict[int, AccessorKind] = {}
        for row in self._rows("MethodSemantics"):
            if row.Semantics.msGetter:
                accessors[row.Method.row_index] = "getter"
            elif row.Semantics.msSetter:
                accessors[row.Method.row_index] = "setter"
        return accessors

    def _collect_generic_params(self) -> dict[tuple[str, int], dict[int, str]]:
        """GenericParam names keyed by owner (table name, row index), then by number."""
        params: dict[tuple[str, int], dict[int, str]] = {}
        for row in self._rows("GenericParam"):
            owner = row.Owner
            table = getattr(owner, "table", None)
            key = (getattr(table, "name", table), owner.row_index)
            params.setdefault(key, {})[row.Number] = _text(row.Name)
        return params

    def _type(self, index: int, row: Any) -> TypeMetadata:
        type_params = self._generic_params.get(("TypeDef", index), {})
        context = GenericContext(type_params=type_params)

        fields = tuple(self._field(ref.row, context) for ref in row.FieldList or [])
        methods = tuple(
            self._method(ref.row_index, ref.row, type_params) for ref in row.MethodList or []
        )
        return TypeMetadata(
            namespace=_text(row.TypeNamespace),
            name=_text(row.TypeName),
            full_name=self.type_def_name(index),
            # Nested types are never top-level public
            is_public=bool(row.Flags.tdPublic) and index not in self._enclosing,
            fields=fields,
            methods=methods,
        )

    def _field(self, row: Any, context: GenericContext) -> FieldMetadata:
        return FieldMetadata(
            name=_text(row.Name),
            type_name="",
            is_public=bool(row.Flags.fdPublic),
            loader=partial(self._decoder.field_type, _blob(row.Signature), context),
        )

    def _method(self, index: int, row: Any, type_params: dict[int, str]) -> MethodMetadata:
        name = _text(row.Name)
        names = {p.row.Sequence: _text(p.row.Name) for p in row.ParamList or []}
        context = GenericContext(
            type_params=type_params,
            method_params=self._generic_params.get(("MethodDef", index), {}),
        )

        accessor = self._accessors.get(index)
        if accessor is None:
            is_ctor = bool(row.Flags.mdRTSpecialName) and name in CONSTRUCTOR_NAMES
            accessor = "constructor" if is_ctor else "none"

        return MethodMetadata(
            name=name,
            return_type="",
            is_public=bool(row.Flags.mdPublic),
            accessor=accessor,
            loader=partial(self._signature, _blob(row.Signature), names, context),
        )

    def _signature(
        self, blob: bytes, names: dict[int, str], context: GenericContext
    ) -> tuple[str, tuple[ParameterMetadata, ...]]:
        ret, param_types = self._decoder.method_types(blob, context)
        params = tuple(
            ParameterMetadata(name=names.get(seq, ""), type_name=t)
            for seq, t in enumerate(param_types, start=1)
        )
        return ret, params


class DotNetMetadataReader:
    """
    Context manager owning the dnfile handle for one assembly.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._pe: dnfile.dnPE | None = None

    def __enter__(self) -> DotNetMetadataReader:
        try:
            self._pe = dnfile.dnPE(str(self._path))
        except pefile.PEFormatError as e:
            raise InvalidAssemblyFormat(str(self._path), str(e)) from e

        net = getattr(self._pe, "net", None)
        if net is None or getattr(net, "mdtables", None) is None:
            self.close()
            raise InvalidAssemblyFormat(str(self._path), "no CLR metadata")
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._pe is not None:
            self._pe.close()
            self._pe = None

    def read(self) -> AssemblyMetadata:
        if self._pe is None:
            raise RuntimeError("Reader is not open")
        builder = MetadataGraphBuilder(
            self._pe.net.mdtables, fallback_name=self._path.stem
        )
        return builder.build()
