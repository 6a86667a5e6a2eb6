from __future__ import annotations

from importlib.resources import files

from ..schema import GeneratedUnit
from .client.helpers import runtime_unit_name
from .profile import GenerationProfile

RUNTIME_HEADER = [
    "# Connect protocol runtime shared by generated clients",
    "# Auto-generated - DO NOT EDIT",
]


def runtime_source() -> str:
    """Source of the runtime module emitted next to generated clients."""
    return files("connectgen").joinpath("connect_runtime.py").read_text(encoding="utf-8")


def generate_runtime(profile: GenerationProfile) -> GeneratedUnit:
    """Generate the shared runtime unit.

    The content does not depend on the schema, so emitting it again in a
    later run overwrites it with identical text.
    """
    lines = list(RUNTIME_HEADER)
    lines.append(runtime_source().rstrip())
    return GeneratedUnit(name=runtime_unit_name(profile), content="\n".join(lines) + "\n")
