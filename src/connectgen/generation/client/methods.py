from __future__ import annotations

from dataclasses import replace

from ...schema import Field, Method
from ..classifier import CallShape, classify
from ..naming import RESERVED_NAMES, to_identifier, to_snake_case, to_type_name
from ..type_mapper import TargetType, map_kind
from .context import FieldView, MethodView

CALL_PARAMS = [
    "timeout: float | None = None",
    "cancel: CancelToken | None = None",
]


def build_method_view(method: Method) -> MethodView:
    """Build everything the template needs to render one stub."""
    shape = classify(method)
    stub_name = to_identifier(method.name)
    suffix = "event" if shape.is_streaming else "response"
    return MethodView(
        name=method.name,
        stub_name=stub_name,
        signal_name=f"{to_snake_case(method.name)}_{suffix}",
        comment=method_comment(shape),
        entry_point=shape.entry_point,
        input_type=to_type_name(method.input_type),
        params=build_params(method.request_fields),
        fields=[build_field_view(item) for item in method.request_fields],
    )


def claim_member_names(methods: list[MethodView]) -> list[MethodView]:
    """Make signal and stub names unique within one client class.

    Signals claim their names first. A stub whose name is already taken gets
    a trailing underscore until it is free, so a method ``GetResponse`` next
    to a method ``Get`` becomes ``get_response_``.
    """
    taken = set(RESERVED_NAMES)
    signal_names = [_claim(view.signal_name, taken) for view in methods]
    return [
        replace(view, signal_name=signal_name, stub_name=_claim(view.stub_name, taken))
        for view, signal_name in zip(methods, signal_names)
    ]


def _claim(name: str, taken: set[str]) -> str:
    while name in taken:
        name = f"{name}_"
    taken.add(name)
    return name


def method_comment(shape: CallShape) -> str:
    if shape is CallShape.STREAMING:
        return "Streaming RPC"
    if shape is CallShape.UNARY_IDEMPOTENT:
        return "Unary RPC (idempotent - supports GET)"
    return "Unary RPC"


def has_default(item: Field) -> bool:
    return item.is_optional or item.is_repeated


def param_declaration(item: Field) -> str:
    """Render a stub parameter for a request field.

    Example:
        >>> param_declaration(Field("loud", "loud", "bool", is_optional=True))
        'loud: bool = False'
    """
    name = to_identifier(item.name)
    mapping = map_kind(item.kind)
    if item.is_repeated:
        return f"{name}: Sequence[{mapping.annotation}] = ()"
    if not item.is_optional:
        return f"{name}: {mapping.annotation}"
    if mapping.target is TargetType.MAP:
        return f"{name}: {mapping.annotation} | None = None"
    return f"{name}: {mapping.annotation} = {mapping.default}"


def build_params(request_fields: tuple[Field, ...]) -> list[str]:
    """Render the stub parameters in field declaration order.

    Once a defaulted parameter appears, any later required field would be
    invalid as a positional parameter, so the rest become keyword-only.
    """
    params: list[str] = []
    keyword_only = False
    for index, item in enumerate(request_fields):
        if (
            not keyword_only
            and has_default(item)
            and any(not has_default(later) for later in request_fields[index + 1 :])
        ):
            params.append("*")
            keyword_only = True
        params.append(param_declaration(item))
    if not keyword_only:
        params.append("*")
    params.extend(CALL_PARAMS)
    return params


def build_field_view(item: Field) -> FieldView:
    """Render how a field is put into the outgoing message.

    Optional fields equal to their default and empty repeated fields are
    left out of the message entirely.
    """
    param = to_identifier(item.name)
    if item.is_repeated:
        return FieldView(param=param, json_name=item.json_name, value=f"list({param})", omit_condition=param)
    if not item.is_optional:
        return FieldView(param=param, json_name=item.json_name, value=param)
    mapping = map_kind(item.kind)
    if mapping.target is TargetType.MAP:
        condition = param
    elif mapping.target is TargetType.DYNAMIC:
        condition = f"{param} is not None"
    else:
        condition = f"{param} != {mapping.default}"
    return FieldView(param=param, json_name=item.json_name, value=param, omit_condition=condition)
