class AssemblyInspectorError(Exception):
    """Base class for failures raised while inspecting an assembly."""


class InvalidAssemblyFormat(AssemblyInspectorError):
    """The input is not a well-formed .NET assembly."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        msg = f"Invalid assembly format: {path}"
        super().__init__(f"{msg} ({reason})" if reason else msg)
