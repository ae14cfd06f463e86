from .exceptions import AmbiguousResolutionError
from .query_engine import QueryEngine
from .resolution import AmbiguityPolicy, Ambiguous, NotFound, Resolution, Unique

__all__ = [
    "QueryEngine",
    "AmbiguityPolicy",
    "Resolution",
    "Unique",
    "Ambiguous",
    "NotFound",
    "AmbiguousResolutionError",
]
