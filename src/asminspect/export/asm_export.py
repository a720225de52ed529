"""
asm_export.py

Reads the metadata of a .NET assembly and writes an XML summary of its public
API surface (types, fields, methods, parameters) next to the assembly, with a
timestamped run log.

    asm-export path/to/Library.dll
    asm-export path/to/Library.dll --namespace My.Namespace
    asm-export path/to/Library.dll --namespace      # list namespaces only

This tool is read-only: the assembly is parsed, never loaded or executed.
"""

import argparse
import datetime
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from asminspect.metadata.reader import DotNetMetadataReader
from asminspect.shared.console import RunLog

from .config import ConfigurationManager
from .core import ExportService
from .errors import InvalidAssemblyFormat


class CliInterface:
    """
    Handles command-line arguments and run bootstrapping.
    """

    def __init__(
        self, *, reader_factory: Callable[[Path], Any] = DotNetMetadataReader
    ) -> None:
        self._reader_factory = reader_factory
        self._parser = self._build_parser()

    def run(self, argv: list[str] | None = None) -> int:
        args, extra = self._parser.parse_known_args(argv)

        if not args.assembly:
            self._parser.print_usage(sys.stdout)
            return 0

        assembly_path = Path(args.assembly)
        if not assembly_path.is_file():
            print(f"[ERROR] File '{args.assembly}' not found.")
            return 1

        try:
            config = self._build_config(args)
            level = ConfigurationManager.resolve_level(config.get("log_level"))
        except (OSError, ValueError) as e:
            print(f"[ERROR] {e}", file=sys.stderr)
            return 1

        with RunLog(level=level, no_color=config.get("no_color", False)) as log:
            if extra:
                log.debug(f"Ignoring arguments: {' '.join(extra)}")

            # A bare --namespace lists namespaces instead of exporting
            if args.namespace == "":
                return self._list_namespaces(assembly_path, config, log)
            return self._export(assembly_path, args.namespace, config, log)

    def _list_namespaces(
        self, assembly_path: Path, config: dict[str, Any], log: RunLog
    ) -> int:
        try:
            with self._reader_factory(assembly_path) as reader:
                assembly = reader.read()

            service = ExportService(app_config=config, logger=log)
            namespaces = service.discover_namespaces(assembly)
        except InvalidAssemblyFormat:
            log.error("Invalid assembly format.")
            return 1
        except Exception as e:
            log.error(f"Unexpected error: {e}")
            return 1

        print("Available namespaces:")
        for ns in namespaces:
            print(f"- {ns}")
        return 0

    def _export(
        self,
        assembly_path: Path,
        namespace: str | None,
        config: dict[str, Any],
        log: RunLog,
    ) -> int:
        stamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = Path(config["log_dir"]) / f"{assembly_path.stem}_{stamp}.log"

        try:
            log.attach_file(log_path)
            log.info(f"Reading assembly: {assembly_path}")

            service = ExportService(app_config=config, logger=log)
            with self._reader_factory(assembly_path) as reader:
                # Member signatures decode during the walk, so it runs while open
                report = service.build_report(reader.read(), namespace)

            output_path = service.output_path(assembly_path)
            service.write_xml(report, output_path)

            log.success(f"Export complete. XML saved to '{output_path}'")
            log.info(f"Log file saved as '{log_path}'")
            return 0

        except InvalidAssemblyFormat:
            log.error("Invalid assembly format.")
            return 1
        except Exception as e:
            log.error(f"Unexpected error: {e}")
            return 1

    def _build_config(self, args: argparse.Namespace) -> dict[str, Any]:
        overrides = {
            "log_dir": args.log_dir,
            "log_level": args.log_level,
            "no_color": args.no_color,
        }

        mgr = ConfigurationManager()
        return mgr.load_config(args.config, overrides)

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="asm-export",
            description="Export the public API of a .NET assembly to XML.",
            formatter_class=argparse.RawTextHelpFormatter,
        )

        # Core
        parser.add_argument("assembly", nargs="?", help="Path to the assembly.")
        parser.add_argument(
            "--namespace",
            nargs="?",
            const="",
            default=None,
            help="Export only this namespace. Without a value, list namespaces.",
        )
        parser.add_argument("--config", help="Path to JSON/JSONC config.")
        parser.add_argument("--log-dir", dest="log_dir")

        # Log
        log_g = parser.add_mutually_exclusive_group()
        log_g.add_argument(
            "-v",
            "--verbose",
            action="store_const",
            dest="log_level",
            const="DEBUG",
        )
        log_g.add_argument(
            "-q", "--quiet", action="store_const", dest="log_level", const="ERROR"
        )
        parser.add_argument("--no-color", action="store_true", default=None)

        return parser


def main() -> None:
    sys.exit(CliInterface().run())


if __name__ == "__main__":
    main()
