"""apiforge command line.

Commands:
  generate  Import the operation modules under a directory and write their OpenAPI document
  combine   Merge several OpenAPI documents into one

Run with: apiforge generate -i ./api -o openapi.yaml
          apiforge combine users.yaml orders.yaml -o combined.yaml -p users:/users
"""
from __future__ import annotations

import argparse
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import Iterator, Sequence

from apiforge import __version__
from apiforge.core.config import settings
from apiforge.core.errors import AppError, Ok, Result, file_not_found, file_read_error, validation_error
from apiforge.core.logging import cli_logger, configure_logging
from apiforge.operations import CompiledOperation, OpenAPIDocumentGenerator
from apiforge.operations.combiner import Combiner, CombinerConfig

log = cli_logger()

# ANSI color codes
C_RESET = "\033[0m"
C_BOLD = "\033[1m"
C_DIM = "\033[2m"
C_GREEN = "\033[32m"
C_RED = "\033[31m"


# ============================================================================
# Operation Discovery
# ============================================================================

def iter_modules(directory: Path) -> Iterator[Path]:
    """Python files under ``directory``, skipping tests and private modules."""
    for path in sorted(directory.rglob("*.py")):
        if path.name.startswith(("test_", "_")) or any(part.startswith((".", "_")) for part in
                                                       path.relative_to(directory).parts[:-1]):
            continue
        yield path


def load_module(path: Path, index: int) -> Result[ModuleType, AppError]:
    spec = importlib.util.spec_from_file_location(f"_apiforge_scan_{index}_{path.stem}", path)
    if spec is None or spec.loader is None:
        return file_read_error(path, "not an importable module", origin="cli")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        return file_read_error(path, f"{type(e).__name__}: {e}", origin="cli", cause=e)
    return Ok(module)


def collect_operations(module: ModuleType) -> list[CompiledOperation]:
    """Module-level operations, including those held in lists and tuples."""
    found = []
    for value in vars(module).values():
        if isinstance(value, CompiledOperation):
            found.append(value)
        elif isinstance(value, (list, tuple)):
            found.extend(v for v in value if isinstance(v, CompiledOperation))
    return found


def discover_operations(directory: Path) -> Result[list[CompiledOperation], AppError]:
    if not directory.is_dir():
        return file_not_found(directory, origin="cli")
    
    # Sibling imports inside the scanned package resolve against its directory.
    sys.path.insert(0, str(directory))
    try:
        operations: dict[str, CompiledOperation] = {}
        for index, path in enumerate(iter_modules(directory)):
            result = load_module(path, index)
            if result.is_err():
                return result
            for op in collect_operations(result.unwrap()):
                operations.setdefault(op.key, op)
            log.debug("module_scanned", path=str(path), operations=len(operations))
    finally:
        sys.path.remove(str(directory))
    return Ok(list(operations.values()))


# ============================================================================
# Commands
# ============================================================================

def run_generate(args: argparse.Namespace) -> Result[Path, AppError]:
    directory = Path(args.input)
    result = discover_operations(directory)
    if result.is_err():
        return result
    operations = result.unwrap()
    if not operations:
        return validation_error(f"no operations found in {directory}", origin="cli")
    
    spec = OpenAPIDocumentGenerator(args.title or directory.resolve().name, args.version)
    if args.description:
        spec.set_description(args.description)
    for server in args.server or ():
        spec.add_server(server)
    
    for op in operations:
        processed = spec.process(op.info())
        if processed.is_err():
            return processed
    
    print(f"  {C_DIM}Operations:{C_RESET} {len(operations)}")
    return spec.write(Path(args.output), args.format)


def parse_prefixes(values: Sequence[str]) -> Result[dict[str, str], AppError]:
    prefixes = {}
    for value in values:
        service, sep, prefix = value.partition(":")
        if not sep or not service or not prefix:
            return validation_error(f"invalid prefix {value!r}, expected service:/prefix", origin="cli")
        prefixes[service] = prefix
    return Ok(prefixes)


def split_tags(value: str | None) -> list[str]:
    return [t.strip() for t in value.split(",") if t.strip()] if value else []


def run_combine(args: argparse.Namespace) -> Result[Path, AppError]:
    if not args.files and not args.config:
        return validation_error("no input files or config given", origin="cli")
    prefixes = parse_prefixes(args.prefix or ())
    if prefixes.is_err():
        return prefixes
    
    combiner = Combiner(CombinerConfig(
        output_file=Path(args.output),
        format=args.format or "",
        title=args.title,
        version=args.version,
        base_url=args.base_url or "",
        config_file=Path(args.config) if args.config else None,
        service_prefix=prefixes.unwrap(),
        include_tags=split_tags(args.include_tags),
        exclude_tags=split_tags(args.exclude_tags),
        validate_output=not args.no_validate,
    ))
    for path in args.files:
        combiner.add_input(Path(path))
    
    result = combiner.run()
    if result.is_ok():
        s = combiner.stats
        print(f"  {C_DIM}Input files:{C_RESET} {s.input_files}  {C_DIM}Services:{C_RESET} {s.services_combined}  "
              f"{C_DIM}Paths:{C_RESET} {s.total_paths}  {C_DIM}Operations:{C_RESET} {s.total_operations}  "
              f"{C_DIM}Conflicts:{C_RESET} {s.conflicts}")
    return result


# ============================================================================
# Entry Point
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apiforge",
        description="Generate and combine OpenAPI 3.1 documents from apiforge operations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  apiforge generate -i ./api -o openapi.yaml -t "Users API" -V 1.2.0
  apiforge combine users-service.yaml orders-api.json -o combined.yaml -b /api
  apiforge combine -c services.yaml -o combined.json -f json
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)
    
    gen = sub.add_parser("generate", help="Generate an OpenAPI document from operation modules")
    gen.add_argument("-i", "--input", required=True, help="Directory containing operation modules")
    gen.add_argument("-o", "--output", default="openapi.yaml", help="Output file (default: openapi.yaml)")
    gen.add_argument("-f", "--format", choices=("yaml", "json"), help="Output format (default: by suffix)")
    gen.add_argument("-t", "--title", help="API title (default: input directory name)")
    gen.add_argument("-V", "--api-version", dest="version", default="1.0.0", help="API version")
    gen.add_argument("-d", "--description", help="API description")
    gen.add_argument("-s", "--server", action="append", help="Server URL (repeatable)")
    gen.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    gen.set_defaults(run=run_generate)
    
    comb = sub.add_parser("combine", help="Combine several OpenAPI documents")
    comb.add_argument("files", nargs="*", help="Input OpenAPI documents (YAML or JSON)")
    comb.add_argument("-o", "--output", default="combined-api.yaml", help="Output file")
    comb.add_argument("-f", "--format", choices=("yaml", "json"), help="Output format (default: by suffix)")
    comb.add_argument("-t", "--title", default="Combined API", help="Combined API title")
    comb.add_argument("-V", "--api-version", dest="version", default="1.0.0", help="Combined API version")
    comb.add_argument("-b", "--base-url", help="Prefix for every path")
    comb.add_argument("-c", "--config", help="Services config file (YAML)")
    comb.add_argument("-p", "--prefix", action="append", help="Service prefix as service:/prefix (repeatable)")
    comb.add_argument("--include-tags", help="Comma-separated tags to keep")
    comb.add_argument("--exclude-tags", help="Comma-separated tags to drop")
    comb.add_argument("--no-validate", action="store_true", help="Skip output validation")
    comb.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    comb.set_defaults(run=run_combine)
    
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level="DEBUG" if args.verbose else settings.LOG_LEVEL, json_logs=settings.LOG_JSON,
        stream=sys.stderr)
    
    result = args.run(args)
    if result.is_err():
        error = result.unwrap_err()
        log.error("command_failed", command=args.command, error_code=error.code.name, message=error.message)
        print(f"{C_RED}✗ {error.message}{C_RESET}", file=sys.stderr)
        return 1
    
    print(f"{C_GREEN}✓{C_RESET} {C_BOLD}{result.unwrap()}{C_RESET}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
