from __future__ import annotations

import io
from pathlib import Path
from typing import Callable

import pytest

from asminspect.export.models import (
    AssemblyMetadata,
    FieldMetadata,
    MethodMetadata,
    ModuleMetadata,
    ParameterMetadata,
    TypeMetadata,
)
from asminspect.shared.console import RunLog
from tests._fixtures.assembly_builder import build_sample_library


class FakeReader:
    """Stands in for DotNetMetadataReader, returning a prepared graph."""

    def __init__(self, assembly: AssemblyMetadata | None, error: Exception | None = None):
        self.assembly = assembly
        self.error = error
        self.closed = False

    def __enter__(self) -> FakeReader:
        if self.error is not None:
            raise self.error
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.closed = True

    def read(self) -> AssemblyMetadata:
        assert self.assembly is not None
        return self.assembly


@pytest.fixture
def sample_assembly() -> AssemblyMetadata:
    """Two namespaces, deliberately unsorted, with every excluded member kind."""
    widget = TypeMetadata(
        namespace="Game.UI",
        name="Widget",
        full_name="Game.UI.Widget",
        is_public=True,
        fields=(
            FieldMetadata("width", "System.Int32", True),
            FieldMetadata("<Title>k__BackingField", "System.String", True),
            FieldMetadata("_secret", "System.String", False),
            FieldMetadata("children", "System.Collections.Generic.List`1<Game.UI.Widget>", True),
        ),
        methods=(
            MethodMetadata(
                "Show",
                "System.Void",
                True,
                parameters=(
                    ParameterMetadata("target", "Game.Core.Entity"),
                    ParameterMetadata("animate", "System.Boolean"),
                ),
            ),
            MethodMetadata("get_Title", "System.String", True, accessor="getter"),
            MethodMetadata("set_Title", "System.Void", True, accessor="setter"),
            MethodMetadata(".ctor", "System.Void", True, accessor="constructor"),
            MethodMetadata("<Show>b__0", "System.Void", True),
            MethodMetadata("get_Il2CppType", "System.Type", True),
            MethodMetadata("Hide", "System.Void", False),
            MethodMetadata("Apply", "System.Boolean", True),
        ),
    )
    entity = TypeMetadata(
        namespace="Game.Core",
        name="Entity",
        full_name="Game.Core.Entity",
        is_public=True,
        methods=(MethodMetadata("Destroy", "System.Void", True),),
    )
    hidden = TypeMetadata("Game.Core", "Internal", "Game.Core.Internal", False)
    generated = TypeMetadata("", "<PrivateImplementationDetails>", "<PrivateImplementationDetails>", True)
    module_type = TypeMetadata("", "_Module_", "_Module_", True)
    global_type = TypeMetadata("", "Program", "Program", True)

    return AssemblyMetadata(
        name="Game",
        modules=(
            ModuleMetadata(
                "Game.dll",
                types=(widget, hidden, generated, entity, module_type, global_type),
            ),
        ),
    )


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def run_log(log_stream: io.StringIO):
    log = RunLog(no_color=True, stream=log_stream)
    yield log
    log.close()


@pytest.fixture
def fake_reader_factory() -> Callable[..., Callable[[Path], FakeReader]]:
    def make(assembly: AssemblyMetadata | None = None, error: Exception | None = None):
        readers: list[FakeReader] = []

        def factory(path: Path) -> FakeReader:
            reader = FakeReader(assembly, error)
            readers.append(reader)
            return reader

        factory.readers = readers  # type: ignore[attr-defined]
        return factory

    return make


@pytest.fixture
def sample_library(tmp_path: Path) -> Path:
    """A real (metadata-only) .NET assembly on disk, see build_sample_library."""
    return build_sample_library(tmp_path / "Sample.dll")
