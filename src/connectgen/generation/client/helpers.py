from __future__ import annotations

from pathlib import PurePosixPath

from ...schema import Field
from ..naming import to_module_name
from ..profile import GenerationProfile
from ..type_mapper import field_annotation
from .context import MessageView


def client_unit_name(schema_name: str, profile: GenerationProfile) -> str:
    """Output path of the client unit generated for a schema file.

    Example:
        >>> client_unit_name("helloworld/v1/greeter.proto", GenerationProfile())
        'helloworld/v1/greeter_connect.py'
    """
    path = PurePosixPath(schema_name)
    parts = [to_module_name(part) for part in path.parent.parts if part not in {".", ""}]
    parts.append(to_module_name(path.stem) + profile.client_suffix + ".py")
    return "/".join(parts)


def runtime_unit_name(profile: GenerationProfile) -> str:
    return f"{profile.runtime_module}.py"


def runtime_import(schema_name: str, profile: GenerationProfile) -> str:
    """Relative module path from a client unit to the runtime unit.

    The runtime sits at the output root, so the number of leading dots
    grows with the directory depth of the client unit.

    Example:
        >>> runtime_import("helloworld/v1/greeter.proto", GenerationProfile())
        '...connect_runtime'
    """
    depth = client_unit_name(schema_name, profile).count("/")
    return "." * (depth + 1) + profile.runtime_module


def class_name(service_name: str) -> str:
    name = service_name[:1].upper() + service_name[1:]
    return f"{name}Client"


def message_view(name: str, fields: tuple[Field, ...]) -> MessageView:
    return MessageView(
        name=name,
        fields=[(item.json_name, field_annotation(item)) for item in fields],
    )
