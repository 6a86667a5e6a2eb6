from __future__ import annotations

import keyword
import re

# Names a generated stub cannot take over without shadowing something
# its body relies on.
RESERVED_NAMES = frozenset(
    {
        "self",
        "list",
        "timeout",
        "cancel",
        "request_data",
        "base_url",
        "config",
        "transport",
        "error_occurred",
        "get_base_url",
        "set_base_url",
        "call_unary_get",
        "call_unary_post",
        "call_streaming",
        "default_base_url",
    }
)


def to_snake_case(name: str) -> str:
    """Convert an exported name to a lower-case, underscore-separated name.

    An underscore is inserted before every uppercase letter except the first
    character, so consecutive capitals are split one by one.

    Example:
        >>> to_snake_case("SayHello")
        'say_hello'
        >>> to_snake_case("ID")
        'i_d'
    """
    chars: list[str] = []
    for index, ch in enumerate(name):
        if "A" <= ch <= "Z":
            if index > 0:
                chars.append("_")
            chars.append(ch.lower())
        else:
            chars.append(ch)
    return "".join(chars)


def to_identifier(name: str) -> str:
    """Convert a name to a usable Python identifier for generated code."""
    result = to_snake_case(name)
    if keyword.iskeyword(result) or result in RESERVED_NAMES:
        return f"{result}_"
    return result


def to_json_name(name: str) -> str:
    """Derive the default JSON name of a field the way protoc does.

    Example:
        >>> to_json_name("user_id")
        'userId'
    """
    parts = name.split("_")
    return parts[0] + "".join(part[:1].upper() + part[1:] for part in parts[1:])


def to_module_name(name: str) -> str:
    """Sanitise one output path part into an importable module name."""
    cleaned = re.sub(r"\W", "_", name)
    if not cleaned or cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    if keyword.iskeyword(cleaned):
        cleaned = f"{cleaned}_"
    return cleaned


# Names imported by every generated client unit.
CLIENT_IMPORTS = frozenset(
    {
        "annotations",
        "Any",
        "Sequence",
        "TypedDict",
        "CallResult",
        "CancelToken",
        "ConnectClient",
        "signal",
    }
)


def to_type_name(name: str) -> str:
    """Name of the message shape emitted for a message type."""
    cleaned = to_module_name(name)
    if cleaned in CLIENT_IMPORTS:
        return f"{cleaned}_"
    return cleaned
