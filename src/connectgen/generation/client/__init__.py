"""Client code generation module.

This module provides the generate_client() function that renders one
client unit per schema file.

The generated code includes:
- TypedDict shapes of every request and response message, keyed by wire name
- One ConnectClient subclass per service
- One signal per method, fired with each decoded response or stream event
- One async stub per method delegating to the runtime entry point chosen
  by the method's call shape
"""

from __future__ import annotations

import logging
from functools import lru_cache

from jinja2 import Environment, PackageLoader, StrictUndefined, Template, TemplateError

from ...errors import GenerationError
from ...schema import GeneratedUnit, SchemaFile
from ..naming import to_type_name
from ..profile import GenerationProfile
from .context import ClientContext, FieldView, MessageView, MethodView, ServiceView
from .helpers import class_name, client_unit_name, message_view, runtime_import
from .methods import build_method_view, claim_member_names

__all__ = [
    "generate_client",
    "ClientContext",
    "FieldView",
    "MessageView",
    "MethodView",
    "ServiceView",
]

logger = logging.getLogger(__name__)


def generate_client(schema_file: SchemaFile, profile: GenerationProfile) -> GeneratedUnit:
    """Generate the client unit of a schema file.

    Args:
        schema_file: The schema file; it is expected to declare services
        profile: Generation options

    Returns:
        GeneratedUnit holding the client source and its output path

    Raises:
        GenerationError: If the template cannot be rendered
    """
    ctx = build_context(schema_file, profile)
    try:
        code = _client_template().render(
            file_name=ctx.file_name,
            service_names=", ".join(service.class_name for service in ctx.services),
            runtime_import=ctx.runtime_import,
            base_url=ctx.base_url,
            messages=list(ctx.messages.values()),
            services=ctx.services,
        )
    except TemplateError as exc:
        raise GenerationError(f"Failed to render client for {schema_file.name}: {exc}") from exc
    name = client_unit_name(schema_file.name, profile)
    logger.debug("Rendered %s (%d services)", name, len(ctx.services))
    return GeneratedUnit(name=name, content=code.rstrip() + "\n")


def build_context(schema_file: SchemaFile, profile: GenerationProfile) -> ClientContext:
    ctx = ClientContext(
        file_name=schema_file.name.rsplit("/", 1)[-1],
        runtime_import=runtime_import(schema_file.name, profile),
        base_url=profile.base_url,
    )
    for service in schema_file.services:
        methods: list[MethodView] = []
        for method in service.methods:
            input_type = to_type_name(method.input_type)
            output_type = to_type_name(method.output_type)
            ctx.messages.setdefault(input_type, message_view(input_type, method.request_fields))
            ctx.messages.setdefault(output_type, message_view(output_type, method.response_fields))
            methods.append(build_method_view(method))
        ctx.services.append(
            ServiceView(
                class_name=class_name(service.name),
                path=service.full_path(schema_file.package),
                methods=claim_member_names(methods),
            )
        )
    return ctx


@lru_cache(maxsize=None)
def _client_template() -> Template:
    env = Environment(
        loader=PackageLoader("connectgen.generation", "templates"),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters["pyrepr"] = repr
    return env.get_template("client.py.j2")
