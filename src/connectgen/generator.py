from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from .generation import GenerationProfile, generate_client, generate_runtime
from .schema import GeneratedUnit, SchemaFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputSpec:
    output_dir: Path


def generate_units(
    schema_files: Iterable[SchemaFile],
    profile: GenerationProfile,
) -> list[GeneratedUnit]:
    """Generate every unit of one run.

    One client unit is produced per schema file declaring at least one
    service, followed by a single runtime unit when any client was produced.
    Nothing is returned unless every unit rendered.
    """
    units: list[GeneratedUnit] = []
    for schema_file in schema_files:
        if not schema_file.services:
            logger.debug("Skipping %s: no services", schema_file.name)
            continue
        units.append(generate_client(schema_file, profile))
    if units:
        units.append(generate_runtime(profile))
    logger.info("Generated %d units", len(units))
    return units


def write_units(units: Iterable[GeneratedUnit], output_dir: Path) -> list[Path]:
    paths: list[Path] = []
    for unit in units:
        path = output_dir.joinpath(*unit.name.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(unit.content, encoding="utf-8")
        paths.append(path)
    return paths


def generate_package(
    spec: OutputSpec,
    schema_files: Iterable[SchemaFile],
    profile: GenerationProfile,
) -> list[Path]:
    units = generate_units(schema_files, profile)
    return write_units(units, spec.output_dir)
