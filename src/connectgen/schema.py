"""Resolved schema model consumed by the generator.

The loaders (``connectgen.descriptor`` for protobuf descriptors and
``connectgen.loader`` for JSON/YAML documents) build these objects; the
generation modules only read them.

Key classes:
- SchemaFile: One schema file with its package and services
- Service: A service and its methods
- Method: An RPC with its streaming/idempotency annotations and fields
- Field: A request or response message field
- GeneratedUnit: A block of generated source text and its output path
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Field:
    """A message field.

    Attributes:
        name: The declared field name (e.g. "user_id")
        json_name: The wire name used as the JSON key (e.g. "userId")
        kind: The schema kind ("string", "int32", "message", ...)
        is_optional: Whether the field was declared with the optional keyword
        is_repeated: Whether the field is a list
    """

    name: str
    json_name: str
    kind: str
    is_optional: bool = False
    is_repeated: bool = False


@dataclass(frozen=True)
class Method:
    """An RPC method.

    Attributes:
        name: The method name exactly as declared (e.g. "SayHello")
        input_type: Name of the request message
        output_type: Name of the response message
        is_streaming: Whether the server streams responses
        is_idempotent: True only when explicitly marked NO_SIDE_EFFECTS
        request_fields: Request message fields in declaration order
        response_fields: Response message fields in declaration order
    """

    name: str
    input_type: str
    output_type: str
    is_streaming: bool = False
    is_idempotent: bool = False
    request_fields: tuple[Field, ...] = ()
    response_fields: tuple[Field, ...] = ()


@dataclass(frozen=True)
class Service:
    """A service declared in a schema file.

    Attributes:
        name: The local service name (e.g. "Greeter")
        methods: Methods in declaration order
    """

    name: str
    methods: tuple[Method, ...] = ()

    def full_path(self, package: str) -> str:
        """Return the routing path used in request URLs.

        Example:
            >>> Service("HelloWorldService").full_path("helloworld.v1")
            'helloworld.v1.HelloWorldService'
        """
        if not package:
            return self.name
        return f"{package}.{self.name}"


@dataclass(frozen=True)
class SchemaFile:
    """A schema file.

    Attributes:
        name: Schema-relative path (e.g. "helloworld/v1/greeter.proto")
        package: Dotted package identifier, possibly empty
        services: Services in declaration order
    """

    name: str
    package: str
    services: tuple[Service, ...] = ()


@dataclass(frozen=True)
class GeneratedUnit:
    """Generated source text and the path it should be written to.

    Attributes:
        name: Output path relative to the output root, "/"-separated
        content: The generated source
    """

    name: str
    content: str
