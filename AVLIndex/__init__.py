from .AVLIndexArray import (
    AVLIndexTree,
    build_index,
    fill_index,
    remove_bulk,
    warmup,
)
from .BalancedIndex import (
    DEFAULT_CAPACITY,
    BalancedIndex,
    InvalidArgument,
    Traversal,
)

__all__ = [
    "AVLIndexTree",
    "BalancedIndex",
    "DEFAULT_CAPACITY",
    "InvalidArgument",
    "Traversal",
    "build_index",
    "fill_index",
    "remove_bulk",
    "warmup",
]
