from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FieldView:
    """A request field as rendered inside a stub.

    Attributes:
        param: Parameter name in the stub signature
        json_name: Wire key in the outgoing message
        value: Expression stored under the wire key
        omit_condition: Condition guarding the assignment, empty when the
            field is always sent
    """

    param: str
    json_name: str
    value: str
    omit_condition: str = ""


@dataclass(frozen=True)
class MethodView:
    name: str
    stub_name: str
    signal_name: str
    comment: str
    entry_point: str
    input_type: str
    params: list[str]
    fields: list[FieldView]


@dataclass(frozen=True)
class ServiceView:
    class_name: str
    path: str
    methods: list[MethodView]


@dataclass(frozen=True)
class MessageView:
    """A message shape emitted as a TypedDict keyed by wire name."""

    name: str
    fields: list[tuple[str, str]]


@dataclass
class ClientContext:
    """State collected while building the views of one schema file.

    Note:
        ``messages`` is filled as methods are visited so that every message
        shape is emitted once even when several methods share it.
    """

    file_name: str
    runtime_import: str
    base_url: str | None
    services: list[ServiceView] = field(default_factory=list)
    messages: dict[str, MessageView] = field(default_factory=dict)
