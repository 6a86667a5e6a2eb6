from __future__ import annotations


class ConnectgenError(Exception):
    """Base class for errors raised while generating clients."""


class SchemaError(ConnectgenError):
    """The schema, descriptor set or generation options are invalid."""


class GenerationError(ConnectgenError):
    """Rendering a generated unit failed. The whole run is aborted."""
