from .classifier import CallShape, classify
from .client import generate_client
from .naming import to_identifier, to_snake_case
from .profile import GenerationProfile
from .runtime import generate_runtime
from .type_mapper import TargetType, TypeMapping, map_kind

__all__ = [
    "CallShape",
    "GenerationProfile",
    "TargetType",
    "TypeMapping",
    "classify",
    "generate_client",
    "generate_runtime",
    "map_kind",
    "to_identifier",
    "to_snake_case",
]
