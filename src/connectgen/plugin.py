"""protoc plugin entry point (``protoc-gen-connect-client``).

Usage::

    protoc --connect-client_out=gen --connect-client_opt=base_url=https://api.example.com greeter.proto
"""

from __future__ import annotations

import logging
import sys
from typing import BinaryIO

from google.protobuf.compiler import plugin_pb2 as plugin

from .descriptor import build_schema_files
from .errors import ConnectgenError
from .generation import GenerationProfile
from .generator import generate_units

logger = logging.getLogger(__name__)


def run(request: plugin.CodeGeneratorRequest) -> plugin.CodeGeneratorResponse:
    """Answer one code generation request.

    Failures are returned in the response's ``error`` field with no files,
    so protoc reports them and writes nothing.
    """
    response = plugin.CodeGeneratorResponse()
    response.supported_features = plugin.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL
    try:
        profile = GenerationProfile.from_parameter(request.parameter)
        schema_files = build_schema_files(request.proto_file, request.file_to_generate)
        units = generate_units(schema_files, profile)
    except ConnectgenError as exc:
        logger.debug("Generation failed: %s", exc)
        response.error = str(exc)
        return response
    for unit in units:
        generated = response.file.add()
        generated.name = unit.name
        generated.content = unit.content
    return response


def main(stdin: BinaryIO | None = None, stdout: BinaryIO | None = None) -> int:
    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer
    request = plugin.CodeGeneratorRequest.FromString(stdin.read())
    response = run(request)
    stdout.write(response.SerializeToString())
    stdout.flush()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
