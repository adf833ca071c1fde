from . import deserialize
from . import logging
from . import query

__all__ = [
    "deserialize",
    "logging",
    "query",
]
