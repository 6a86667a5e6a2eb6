from __future__ import annotations

from dataclasses import dataclass, fields

from ..errors import SchemaError


@dataclass(frozen=True)
class GenerationProfile:
    """Options controlling where and how units are generated.

    Attributes:
        client_suffix: Appended to the schema file stem to name client units
        runtime_module: Module name of the shared runtime unit
        base_url: Default base URL baked into generated clients, if any
    """

    client_suffix: str = "_connect"
    runtime_module: str = "connect_runtime"
    base_url: str | None = None

    def __post_init__(self) -> None:
        if not self.runtime_module.isidentifier():
            raise SchemaError(f"runtime_module must be a Python identifier: {self.runtime_module!r}")
        if not f"x{self.client_suffix}".isidentifier():
            raise SchemaError(f"client_suffix must be usable in a module name: {self.client_suffix!r}")

    @classmethod
    def from_parameter(cls, parameter: str) -> "GenerationProfile":
        """Build a profile from a protoc plugin parameter string.

        Example:
            >>> GenerationProfile.from_parameter("base_url=http://api:9000,client_suffix=_rpc")
            GenerationProfile(client_suffix='_rpc', runtime_module='connect_runtime', base_url='http://api:9000')
        """
        known = {item.name for item in fields(cls)}
        options: dict[str, str] = {}
        for item in parameter.split(","):
            item = item.strip()
            if not item:
                continue
            key, sep, value = item.partition("=")
            key = key.strip()
            if not sep:
                raise SchemaError(f"Plugin option must be key=value: {item!r}")
            if key not in known:
                raise SchemaError(f"Unknown plugin option: {key!r}")
            options[key] = value.strip()
        return cls(**options)
