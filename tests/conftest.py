from __future__ import annotations

import importlib
import uuid
from collections.abc import Callable
from pathlib import Path
from types import ModuleType

import pytest
from google.protobuf import descriptor_pb2

from connectgen.generation.client.helpers import client_unit_name
from connectgen.generation.profile import GenerationProfile
from connectgen.generator import OutputSpec, generate_package
from connectgen.schema import Field, Method, SchemaFile, Service


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def import_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Callable[[SchemaFile], ModuleType]:
    """Generate a schema file into a fresh package and import its client unit."""
    monkeypatch.syspath_prepend(str(tmp_path))

    def load(schema_file: SchemaFile) -> ModuleType:
        package = f"generated_{uuid.uuid4().hex}"
        profile = GenerationProfile()
        generate_package(OutputSpec(output_dir=tmp_path / package), [schema_file], profile)
        importlib.invalidate_caches()
        module_path = client_unit_name(schema_file.name, profile).removesuffix(".py").replace("/", ".")
        return importlib.import_module(f"{package}.{module_path}")

    return load


@pytest.fixture()
def greeter_document() -> dict[str, object]:
    return {
        "files": [
            {
                "name": "helloworld/v1/greeter.proto",
                "package": "helloworld.v1",
                "services": [
                    {
                        "name": "HelloWorldService",
                        "methods": [
                            {
                                "name": "SayHello",
                                "input_type": "HelloRequest",
                                "output_type": "HelloReply",
                                "idempotency_level": "NO_SIDE_EFFECTS",
                                "request_fields": [
                                    {"name": "name", "kind": "string"},
                                    {"name": "loud", "kind": "bool", "optional": True},
                                ],
                                "response_fields": [{"name": "reply", "kind": "string"}],
                            },
                            {
                                "name": "CreateGreeting",
                                "input_type": "CreateGreetingRequest",
                                "output_type": "HelloReply",
                                "request_fields": [
                                    {"name": "name", "kind": "string"},
                                    {"name": "tags", "kind": "string", "repeated": True},
                                    {"name": "metadata", "kind": "message", "optional": True},
                                ],
                                "response_fields": [{"name": "reply", "kind": "string"}],
                            },
                            {
                                "name": "WatchGreetings",
                                "input_type": "WatchRequest",
                                "output_type": "GreetingEvent",
                                "server_streaming": True,
                                "request_fields": [
                                    {"name": "name", "kind": "string"},
                                    {"name": "max_events", "kind": "int32", "optional": True},
                                ],
                                "response_fields": [
                                    {"name": "text", "kind": "string"},
                                    {"name": "index", "kind": "int32"},
                                ],
                            },
                        ],
                    }
                ],
            }
        ]
    }


@pytest.fixture()
def greeter_schema() -> SchemaFile:
    reply = (Field("reply", "reply", "string"),)
    return SchemaFile(
        name="helloworld/v1/greeter.proto",
        package="helloworld.v1",
        services=(
            Service(
                name="HelloWorldService",
                methods=(
                    Method(
                        name="SayHello",
                        input_type="HelloRequest",
                        output_type="HelloReply",
                        is_idempotent=True,
                        request_fields=(
                            Field("name", "name", "string"),
                            Field("loud", "loud", "bool", is_optional=True),
                        ),
                        response_fields=reply,
                    ),
                    Method(
                        name="CreateGreeting",
                        input_type="CreateGreetingRequest",
                        output_type="HelloReply",
                        request_fields=(
                            Field("name", "name", "string"),
                            Field("tags", "tags", "string", is_repeated=True),
                            Field("metadata", "metadata", "message", is_optional=True),
                        ),
                        response_fields=reply,
                    ),
                    Method(
                        name="WatchGreetings",
                        input_type="WatchRequest",
                        output_type="GreetingEvent",
                        is_streaming=True,
                        request_fields=(
                            Field("name", "name", "string"),
                            Field("max_events", "maxEvents", "int32", is_optional=True),
                        ),
                        response_fields=(
                            Field("text", "text", "string"),
                            Field("index", "index", "int32"),
                        ),
                    ),
                ),
            ),
        ),
    )


@pytest.fixture()
def greeter_descriptor() -> descriptor_pb2.FileDescriptorProto:
    field = descriptor_pb2.FieldDescriptorProto
    proto = descriptor_pb2.FileDescriptorProto(
        name="helloworld/v1/greeter.proto",
        package="helloworld.v1",
        syntax="proto3",
    )

    request = proto.message_type.add(name="HelloRequest")
    request.field.add(name="name", number=1, type=field.TYPE_STRING, label=field.LABEL_OPTIONAL, json_name="name")
    request.field.add(
        name="loud",
        number=2,
        type=field.TYPE_BOOL,
        label=field.LABEL_OPTIONAL,
        json_name="loud",
        oneof_index=0,
        proto3_optional=True,
    )
    request.field.add(name="tags", number=3, type=field.TYPE_STRING, label=field.LABEL_REPEATED, json_name="tags")
    request.field.add(
        name="labels",
        number=4,
        type=field.TYPE_MESSAGE,
        label=field.LABEL_REPEATED,
        type_name=".helloworld.v1.HelloRequest.LabelsEntry",
        json_name="labels",
    )
    request.oneof_decl.add(name="_loud")
    entry = request.nested_type.add(name="LabelsEntry")
    entry.field.add(name="key", number=1, type=field.TYPE_STRING, label=field.LABEL_OPTIONAL)
    entry.field.add(name="value", number=2, type=field.TYPE_STRING, label=field.LABEL_OPTIONAL)
    entry.options.map_entry = True

    reply = proto.message_type.add(name="HelloReply")
    reply.field.add(name="reply_text", number=1, type=field.TYPE_STRING, label=field.LABEL_OPTIONAL)

    outer = proto.message_type.add(name="Watch")
    event = outer.nested_type.add(name="Event")
    event.field.add(name="index", number=1, type=field.TYPE_INT64, label=field.LABEL_OPTIONAL, json_name="index")
    event.field.add(name="payload", number=2, type=field.TYPE_BYTES, label=field.LABEL_OPTIONAL, json_name="payload")

    service = proto.service.add(name="HelloWorldService")
    say_hello = service.method.add(
        name="SayHello",
        input_type=".helloworld.v1.HelloRequest",
        output_type=".helloworld.v1.HelloReply",
    )
    say_hello.options.idempotency_level = descriptor_pb2.MethodOptions.NO_SIDE_EFFECTS
    create = service.method.add(
        name="CreateGreeting",
        input_type=".helloworld.v1.HelloRequest",
        output_type=".helloworld.v1.HelloReply",
    )
    create.options.idempotency_level = descriptor_pb2.MethodOptions.IDEMPOTENT
    service.method.add(
        name="WatchGreetings",
        input_type=".helloworld.v1.HelloRequest",
        output_type=".helloworld.v1.Watch.Event",
        server_streaming=True,
    )
    service.method.add(
        name="Upload",
        input_type=".helloworld.v1.HelloRequest",
        output_type=".helloworld.v1.HelloReply",
        client_streaming=True,
    )
    return proto
