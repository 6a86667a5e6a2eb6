from .backends import AiohttpBackend, HttpxAsyncBackend
from .descriptor import build_schema_files, load_descriptor_set
from .errors import ConnectgenError, GenerationError, SchemaError
from .generation import (
    CallShape,
    GenerationProfile,
    classify,
    generate_client,
    generate_runtime,
    map_kind,
    to_snake_case,
)
from .generator import OutputSpec, generate_package, generate_units, write_units
from .loader import load_schema
from .schema import Field, GeneratedUnit, Method, SchemaFile, Service

__all__ = [
    "ConnectgenError",
    "GenerationError",
    "SchemaError",
    "GenerationProfile",
    "CallShape",
    "classify",
    "generate_client",
    "generate_runtime",
    "map_kind",
    "to_snake_case",
    "AiohttpBackend",
    "HttpxAsyncBackend",
    "OutputSpec",
    "generate_package",
    "generate_units",
    "write_units",
    "build_schema_files",
    "load_descriptor_set",
    "load_schema",
    "Field",
    "GeneratedUnit",
    "Method",
    "SchemaFile",
    "Service",
]
