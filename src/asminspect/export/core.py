from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from asminspect.shared.console import RunLog

from .member_ops import MemberUtils
from .models import (
    AssemblyMetadata,
    FieldMetadata,
    MethodMetadata,
    ReportNode,
    TypeMetadata,
)


class ExportService:
    """
    Core service turning an assembly's metadata graph into the export document.
    """

    def __init__(self, *, app_config: dict[str, Any], logger: RunLog) -> None:
        self._app_config = app_config
        self._logger = logger

    def discover_namespaces(self, assembly: AssemblyMetadata) -> list[str]:
        """
        Distinct, non-empty namespaces of the exported types, sorted.
        """
        found = {
            t.namespace
            for m in assembly.modules
            for t in m.types
            if MemberUtils.is_exported_type(t) and t.namespace
        }
        return sorted(found)

    def build_report(
        self, assembly: AssemblyMetadata, namespace: str | None = None
    ) -> ReportNode:
        """
        Walks modules -> exported types -> fields/methods -> parameters and
        assembles the Assembly root node.
        """
        types: list[ReportNode] = []

        for module in assembly.modules:
            self._logger.info(f"Processing module: {module.name}")

            exported = [
                t for t in module.types if MemberUtils.is_exported_type(t, namespace)
            ]
            for t in sorted(exported, key=lambda x: x.full_name):
                types.append(self._type_node(t))

        return ReportNode(
            tag="Assembly", attributes=(("Name", assembly.name),), children=tuple(types)
        )

    def output_path(self, assembly_path: Path) -> Path:
        suffix = self._app_config.get("output_suffix", "_Export")
        return assembly_path.parent / f"{assembly_path.stem}{suffix}.xml"

    def serialize(self, report: ReportNode) -> bytes:
        root = self._to_element(report)
        indent = self._app_config.get("indent", "  ")
        if indent:
            ET.indent(root, space=indent)
        return ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n"

    def write_xml(self, report: ReportNode, path: Path) -> None:
        """
        Serializes the whole document before touching `path`, so a failure
        never leaves a partial file behind.
        """
        data = self.serialize(report)
        path.write_bytes(data)

    # --- Private Helpers ---

    def _type_node(self, t: TypeMetadata) -> ReportNode:
        """Member signatures are decoded only once a member passes its filter."""
        self._logger.info(f"Processing type: {t.full_name}")

        children: list[ReportNode] = []

        fields = [f for f in t.fields if MemberUtils.is_exported_field(f)]
        for f in sorted(fields, key=lambda x: x.name):
            children.append(self._field_node(f.resolve()))

        methods = [m for m in t.methods if MemberUtils.is_exported_method(m)]
        for m in sorted(methods, key=lambda x: x.name):
            children.append(self._method_node(m.resolve()))

        return ReportNode(
            tag="Type",
            attributes=(("Namespace", t.namespace or ""), ("FullName", t.full_name)),
            children=tuple(children),
        )

    def _field_node(self, f: FieldMetadata) -> ReportNode:
        self._logger.info(f"Found public field: {f.name}")
        return ReportNode(
            tag="Field",
            attributes=(
                ("Name", f.name),
                ("Type", MemberUtils.simplify_type_name(f.type_name)),
            ),
        )

    def _method_node(self, m: MethodMetadata) -> ReportNode:
        self._logger.info(f"Found public method: {m.name}")
        params = tuple(
            ReportNode(
                tag="Parameter",
                attributes=(
                    ("Name", p.name or ""),
                    ("Type", MemberUtils.simplify_type_name(p.type_name)),
                ),
            )
            for p in m.parameters
        )
        return ReportNode(
            tag="Method",
            attributes=(
                ("Name", m.name),
                ("ReturnType", MemberUtils.simplify_type_name(m.return_type)),
            ),
            children=params,
        )

    def _to_element(self, node: ReportNode) -> ET.Element:
        element = ET.Element(node.tag, dict(node.attributes))
        for child in node.children:
            element.append(self._to_element(child))
        return element
