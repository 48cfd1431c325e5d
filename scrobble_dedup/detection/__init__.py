from .classifier import Verdict, classify, completion_percent, is_duplicate, is_incomplete
from .walker import PageWalker, ScrobbleDeleter, ScrobbleSource

__all__ = [
    "PageWalker",
    "ScrobbleDeleter",
    "ScrobbleSource",
    "Verdict",
    "classify",
    "completion_percent",
    "is_duplicate",
    "is_incomplete",
]
