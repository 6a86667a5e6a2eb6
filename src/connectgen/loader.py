"""Load schema documents written as JSON or YAML.

A schema document lists files, services, methods and fields::

    files:
      - name: helloworld/v1/greeter.proto
        package: helloworld.v1
        services:
          - name: Greeter
            methods:
              - name: SayHello
                input_type: HelloRequest
                output_type: HelloReply
                idempotency_level: NO_SIDE_EFFECTS
                request_fields:
                  - {name: name, kind: string}
                  - {name: loud, kind: bool, optional: true}
                response_fields:
                  - {name: reply, kind: string}

``json_name`` defaults to the lowerCamel form of ``name``; ``server_streaming``
defaults to false; a method is idempotent only when ``idempotency_level`` is
``NO_SIDE_EFFECTS``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from os import PathLike
from pathlib import Path
from typing import cast

from .errors import SchemaError
from .generation.naming import to_json_name
from .schema import Field, Method, SchemaFile, Service

SchemaSource = str | PathLike[str] | Mapping[str, object]

NO_SIDE_EFFECTS = "NO_SIDE_EFFECTS"


def load_schema(source: SchemaSource) -> list[SchemaFile]:
    """Load schema files from a path or an already parsed document.

    Raises:
        SchemaError: If the document does not describe a valid schema
    """
    document = _read_source(source)
    files = document.get("files")
    if not isinstance(files, list):
        raise SchemaError("Schema document must contain a 'files' list")
    return [_parse_file(item, f"files[{index}]") for index, item in enumerate(files)]


def _read_source(source: SchemaSource) -> dict[str, object]:
    if isinstance(source, Mapping):
        return dict(source)
    path = Path(source)
    text = path.read_text(encoding="utf-8")
    if path.suffix in {".yaml", ".yml"}:
        data = _load_yaml(text)
    else:
        data = _load_json_or_yaml(text)
    if not isinstance(data, dict):
        raise SchemaError("Schema document must be an object")
    return cast(dict[str, object], data)


def _load_json_or_yaml(text: str) -> object:
    """Try to load as JSON, fall back to YAML if that fails."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return _load_yaml(text)


def _load_yaml(text: str) -> object:
    """Load YAML text, requiring PyYAML to be installed."""
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise SchemaError("PyYAML is required to load YAML schemas") from exc
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SchemaError(f"Invalid YAML schema: {exc}") from exc


def _parse_file(data: object, where: str) -> SchemaFile:
    obj = _expect_object(data, where)
    services = _expect_list(obj.get("services", []), f"{where}.services")
    return SchemaFile(
        name=_expect_str(obj.get("name"), f"{where}.name"),
        package=_optional_str(obj.get("package"), f"{where}.package"),
        services=tuple(
            _parse_service(item, f"{where}.services[{index}]") for index, item in enumerate(services)
        ),
    )


def _parse_service(data: object, where: str) -> Service:
    obj = _expect_object(data, where)
    methods = _expect_list(obj.get("methods", []), f"{where}.methods")
    parsed = tuple(_parse_method(item, f"{where}.methods[{index}]") for index, item in enumerate(methods))
    names = [method.name for method in parsed]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise SchemaError(f"{where}: duplicate methods {', '.join(duplicates)}")
    return Service(name=_expect_str(obj.get("name"), f"{where}.name"), methods=parsed)


def _parse_method(data: object, where: str) -> Method:
    obj = _expect_object(data, where)
    idempotency = _optional_str(obj.get("idempotency_level"), f"{where}.idempotency_level")
    streaming = obj.get("server_streaming", False)
    if not isinstance(streaming, bool):
        raise SchemaError(f"{where}.server_streaming must be a boolean")
    return Method(
        name=_expect_str(obj.get("name"), f"{where}.name"),
        input_type=_expect_str(obj.get("input_type"), f"{where}.input_type"),
        output_type=_expect_str(obj.get("output_type"), f"{where}.output_type"),
        is_streaming=streaming,
        is_idempotent=idempotency == NO_SIDE_EFFECTS,
        request_fields=_parse_fields(obj.get("request_fields", []), f"{where}.request_fields"),
        response_fields=_parse_fields(obj.get("response_fields", []), f"{where}.response_fields"),
    )


def _parse_fields(data: object, where: str) -> tuple[Field, ...]:
    items = _expect_list(data, where)
    return tuple(_parse_field(item, f"{where}[{index}]") for index, item in enumerate(items))


def _parse_field(data: object, where: str) -> Field:
    obj = _expect_object(data, where)
    name = _expect_str(obj.get("name"), f"{where}.name")
    json_name = obj.get("json_name")
    flags = {}
    for key in ("optional", "repeated"):
        value = obj.get(key, False)
        if not isinstance(value, bool):
            raise SchemaError(f"{where}.{key} must be a boolean")
        flags[key] = value
    return Field(
        name=name,
        json_name=_expect_str(json_name, f"{where}.json_name") if json_name is not None else to_json_name(name),
        kind=_expect_str(obj.get("kind"), f"{where}.kind"),
        is_optional=flags["optional"],
        is_repeated=flags["repeated"],
    )


def _expect_object(value: object, where: str) -> dict[str, object]:
    if not isinstance(value, dict):
        raise SchemaError(f"{where} must be an object")
    return cast(dict[str, object], value)


def _expect_list(value: object, where: str) -> list[object]:
    if not isinstance(value, list):
        raise SchemaError(f"{where} must be a list")
    return cast(list[object], value)


def _expect_str(value: object, where: str) -> str:
    if not isinstance(value, str) or not value:
        raise SchemaError(f"{where} must be a non-empty string")
    return value


def _optional_str(value: object, where: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise SchemaError(f"{where} must be a string")
    return value
