"""Build schema files from protobuf descriptors.

Descriptors come either from a ``CodeGeneratorRequest`` handed to the protoc
plugin or from a serialized ``FileDescriptorSet`` given to the CLI.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from google.protobuf import descriptor_pb2
from google.protobuf.message import DecodeError

from .errors import SchemaError
from .generation.naming import to_json_name
from .schema import Field, Method, SchemaFile, Service

logger = logging.getLogger(__name__)

FieldDescriptorProto = descriptor_pb2.FieldDescriptorProto
MethodOptions = descriptor_pb2.MethodOptions


@dataclass(frozen=True)
class _MessageEntry:
    local_name: str
    proto: descriptor_pb2.DescriptorProto
    syntax: str


def load_descriptor_set(path: str | Path) -> list[SchemaFile]:
    """Load every file of a serialized FileDescriptorSet that declares services."""
    data = Path(path).read_bytes()
    descriptor_set = descriptor_pb2.FileDescriptorSet()
    try:
        descriptor_set.ParseFromString(data)
    except DecodeError as exc:
        raise SchemaError(f"Invalid descriptor set {path}: {exc}") from exc
    files = list(descriptor_set.file)
    return build_schema_files(files, [item.name for item in files])


def build_schema_files(
    proto_files: Sequence[descriptor_pb2.FileDescriptorProto],
    files_to_generate: Iterable[str],
) -> list[SchemaFile]:
    """Convert the requested files into schema files.

    Every file in ``proto_files`` contributes to the message index, so
    request and response messages may live in dependencies. Only the files
    named in ``files_to_generate`` are converted.
    """
    index = _index_messages(proto_files)
    by_name = {proto.name: proto for proto in proto_files}
    schema_files: list[SchemaFile] = []
    for name in files_to_generate:
        proto = by_name.get(name)
        if proto is None:
            raise SchemaError(f"File to generate {name!r} is missing from the descriptors")
        schema_files.append(_build_file(proto, index))
    return schema_files


def _index_messages(proto_files: Iterable[descriptor_pb2.FileDescriptorProto]) -> dict[str, _MessageEntry]:
    index: dict[str, _MessageEntry] = {}
    for proto in proto_files:
        prefix = f".{proto.package}" if proto.package else ""
        syntax = proto.syntax or "proto2"
        stack = [(message, prefix, "") for message in proto.message_type]
        while stack:
            message, scope, outer = stack.pop()
            full_name = f"{scope}.{message.name}"
            local_name = f"{outer}_{message.name}" if outer else message.name
            index[full_name] = _MessageEntry(local_name, message, syntax)
            stack.extend((nested, full_name, local_name) for nested in message.nested_type)
    return index


def _build_file(proto: descriptor_pb2.FileDescriptorProto, index: dict[str, _MessageEntry]) -> SchemaFile:
    services = tuple(_build_service(service, index) for service in proto.service)
    logger.debug("Loaded %s with %d services", proto.name, len(services))
    return SchemaFile(name=proto.name, package=proto.package, services=services)


def _build_service(service: descriptor_pb2.ServiceDescriptorProto, index: dict[str, _MessageEntry]) -> Service:
    methods = []
    for method in service.method:
        if method.client_streaming:
            logger.warning("Skipping %s.%s: client streaming is not supported", service.name, method.name)
            continue
        methods.append(_build_method(method, index))
    return Service(name=service.name, methods=tuple(methods))


def _build_method(method: descriptor_pb2.MethodDescriptorProto, index: dict[str, _MessageEntry]) -> Method:
    request = _lookup(method.input_type, index)
    response = _lookup(method.output_type, index)
    options = method.options
    idempotent = (
        options.HasField("idempotency_level") and options.idempotency_level == MethodOptions.NO_SIDE_EFFECTS
    )
    return Method(
        name=method.name,
        input_type=request.local_name,
        output_type=response.local_name,
        is_streaming=method.server_streaming,
        is_idempotent=idempotent,
        request_fields=_build_fields(request, index),
        response_fields=_build_fields(response, index),
    )


def _lookup(type_name: str, index: dict[str, _MessageEntry]) -> _MessageEntry:
    entry = index.get(type_name)
    if entry is None:
        raise SchemaError(f"Unknown message type {type_name!r}")
    return entry


def _build_fields(entry: _MessageEntry, index: dict[str, _MessageEntry]) -> tuple[Field, ...]:
    return tuple(_build_field(field, entry.syntax, index) for field in entry.proto.field)


def _build_field(field: descriptor_pb2.FieldDescriptorProto, syntax: str, index: dict[str, _MessageEntry]) -> Field:
    kind = FieldDescriptorProto.Type.Name(field.type).removeprefix("TYPE_").lower()
    repeated = field.label == FieldDescriptorProto.LABEL_REPEATED
    if repeated and kind == "message":
        target = index.get(field.type_name)
        # map<K, V> is a repeated entry message; on the wire it is one object.
        if target is not None and target.proto.options.map_entry:
            repeated = False
    optional = field.proto3_optional or (syntax == "proto2" and field.label == FieldDescriptorProto.LABEL_OPTIONAL)
    return Field(
        name=field.name,
        json_name=field.json_name or to_json_name(field.name),
        kind=kind,
        is_optional=optional,
        is_repeated=repeated,
    )
