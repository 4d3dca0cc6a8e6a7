from .objects import diff_object, expand_object, flatten_object, merge_object
from .service import PROTECTED_FIELDS, TokenConfigService

__all__ = [
    "TokenConfigService",
    "PROTECTED_FIELDS",
    "diff_object",
    "expand_object",
    "flatten_object",
    "merge_object",
]
