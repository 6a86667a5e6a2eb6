from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .descriptor import load_descriptor_set
from .errors import ConnectgenError
from .generation import GenerationProfile
from .generator import OutputSpec, generate_package
from .loader import load_schema
from .schema import SchemaFile

DESCRIPTOR_SET_SUFFIXES = {".pb", ".binpb", ".desc", ".protoset"}


def load_schema_files(path: Path) -> list[SchemaFile]:
    if path.suffix in DESCRIPTOR_SET_SUFFIXES:
        return load_descriptor_set(path)
    return load_schema(path)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="connectgen", description="Generate Connect RPC clients from a schema.")
    parser.add_argument(
        "schema",
        type=Path,
        help="Path to a schema document (JSON/YAML) or a serialized FileDescriptorSet",
    )
    parser.add_argument("-o", "--output-dir", type=Path, default=Path("."), help="Output directory")
    parser.add_argument("--base-url", default=None, help="Default base URL baked into generated clients")
    parser.add_argument("--client-suffix", default="_connect", help="Suffix of generated client modules")
    parser.add_argument("--runtime-module", default="connect_runtime", help="Module name of the shared runtime")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        profile = GenerationProfile(
            client_suffix=args.client_suffix,
            runtime_module=args.runtime_module,
            base_url=args.base_url,
        )
        schema_files = load_schema_files(args.schema)
        paths = generate_package(OutputSpec(output_dir=args.output_dir), schema_files, profile)
    except ConnectgenError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except FileNotFoundError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    for path in paths:
        print(path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
