import logging
import numpy as np
from numbers import Integral
from typing import Iterable, Iterator, List, Optional, Tuple

from .AVLIndexArray import (
    AVLIndexTree,
    LEFT,
    RIGHT,
    VALUE,
    fill_index,
)



logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 64

ORDERS = ("in", "pre", "post")

Shape = Optional[Tuple[int, "Shape", "Shape"]]



class InvalidArgument(ValueError):
    """Raised when a query argument lies outside its valid domain."""


def _key(value) -> np.int64:
    """Convert one key to int64. Anything but an integer (bool included) is refused."""

    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"keys must be integers, not {value!r}")
    return np.int64(value)

def _keys(values) -> np.ndarray:
    data = np.asarray(values if isinstance(values, np.ndarray) else list(values)).reshape(-1)
    if data.size and data.dtype.kind not in "iu":
        raise TypeError(f"keys must be integers, not {data.dtype} values")
    return data.astype(np.int64)



# ---------- Lazy traversals over the arena ----------
def _walk_inorder(tree: np.ndarray, root: int) -> Iterator[int]:
    stack   = []
    current = root

    while stack or current:
        while current:
            stack.append(current)
            current = int(tree[current, LEFT])

        current = stack.pop()
        yield int(tree[current, VALUE])
        current = int(tree[current, RIGHT])

def _walk_preorder(tree: np.ndarray, root: int) -> Iterator[int]:
    stack = [root] if root else []

    while stack:
        current = stack.pop()
        yield int(tree[current, VALUE])

        right, left = int(tree[current, RIGHT]), int(tree[current, LEFT])
        if right:
            stack.append(right)
        if left:
            stack.append(left)

def _walk_postorder(tree: np.ndarray, root: int) -> Iterator[int]:
    stack        = []
    current      = root
    last_visited = 0

    while stack or current:
        if current:
            stack.append(current)
            current = int(tree[current, LEFT])
            continue

        top   = stack[-1]
        right = int(tree[top, RIGHT])

        if right and right != last_visited:
            current = right
        else:
            yield int(tree[top, VALUE])
            last_visited = stack.pop()

_WALKS = {
    "in"  : _walk_inorder,
    "pre" : _walk_preorder,
    "post": _walk_postorder,
}


class Traversal:
    """
    A finite, restartable view of the index in one traversal order.

    Values are produced lazily. Every call to ``iter()`` starts a fresh walk
    over the index as it is at that moment. Mutating the index while a walk
    is in progress is not supported.
    """

    def __init__(self, index: "BalancedIndex", order: str):
        if order not in _WALKS:
            raise ValueError(f"unknown traversal order {order!r}, expected one of {ORDERS}")
        self._index = index
        self.order  = order

    def __iter__(self) -> Iterator[int]:
        engine = self._index.engine
        return _WALKS[self.order](engine.tree, int(engine.root))

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"Traversal(order={self.order!r}, size={len(self)})"



# ---------- Index ----------
class BalancedIndex:
    """
    Ordered set of unique int64 keys kept in a height-balanced (AVL) tree.

    Thin Python front-end over :class:`AVLIndexTree`: it converts arguments,
    reports "not found" as ``False``/``None`` instead of sentinel index 0,
    raises :class:`InvalidArgument` for bad ranks and adds lazy traversals
    and a text rendering. Not thread-safe; callers needing concurrent access
    must hold their own lock for every call.
    """

    def __init__(self, values: Iterable[int] = (), capacity: int = DEFAULT_CAPACITY):
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, not {capacity}")

        self.engine = AVLIndexTree(capacity)

        data = _keys(values)
        if data.size:
            self._fill(data)

    @classmethod
    def from_values(cls, values: Iterable[int]) -> "BalancedIndex":
        data = _keys(values)
        return cls(capacity=max(int(data.size), 1), values=data)

    def _fill(self, data: np.ndarray) -> None:
        size_before = int(self.engine.size)
        fill_index(self.engine, data)
        logger.debug("bulk loaded %d values, %d stored", data.size, len(self))
        self._log_growth(size_before)

    def _log_growth(self, size_before: int) -> None:
        size_after = int(self.engine.size)
        if size_after != size_before:
            logger.debug("arena grew from %d to %d rows", size_before, size_after)

    # mutation
    def insert(self, value: int) -> bool:
        """Add ``value``. Returns False (and changes nothing) if it is already present."""

        size_before = int(self.engine.size)
        inserted    = bool(self.engine.insert(_key(value)))
        self._log_growth(size_before)

        if inserted:
            logger.debug("inserted %d (count=%d, height=%d)", value, len(self), self.height())
        else:
            logger.debug("insert %d ignored, already present", value)
        return inserted

    def delete(self, value: int) -> bool:
        """Remove ``value``. Returns False (and changes nothing) if it is absent."""

        removed = bool(self.engine.remove(_key(value)))

        if removed:
            logger.debug("deleted %d (count=%d, height=%d)", value, len(self), self.height())
        else:
            logger.debug("delete %d ignored, not present", value)
        return removed

    remove = delete

    def replace(self, old_value: int, new_value: int) -> bool:
        """
        Move ``old_value`` to ``new_value``. Returns False, with nothing changed,
        if ``old_value`` is absent or ``new_value`` is already stored.
        """

        return bool(self.engine.update_value(_key(old_value), _key(new_value)))

    # lookup
    def search(self, value: int) -> bool:
        return bool(self.engine.contains(_key(value)))

    def __contains__(self, value: int) -> bool:
        return self.search(value)

    def search_many(self, values: Iterable[int]) -> np.ndarray:
        """Boolean mask telling which of ``values`` are stored. Runs the lookups in parallel."""

        queries = _keys(values)
        return self.engine.search_bulk(queries) != 0

    def element_count(self) -> int:
        return int(self.engine.count)

    def __len__(self) -> int:
        return int(self.engine.count)

    def __bool__(self) -> bool:
        return self.engine.count > 0

    def height(self, value: Optional[int] = None) -> int:
        """
        Height of the tree, or of the subtree rooted at ``value``.

        An empty tree, and an absent ``value``, have height 0. A leaf has height 1.
        """

        if value is None:
            return int(self.engine.height)
        return int(self.engine.get_height(self.engine.search(_key(value))))

    def balance_factor(self, value: int) -> int:
        """Left minus right subtree height at ``value`` (0 when absent)."""

        return int(self.engine.balance_factor(self.engine.search(_key(value))))

    def min(self) -> Optional[int]:
        return self._value_at(self.engine.min_index)

    def max(self) -> Optional[int]:
        return self._value_at(self.engine.max_index)

    def successor(self, value: int) -> Optional[int]:
        """Smallest stored value greater than ``value``, or None."""

        return self._value_at(self.engine.next_greater(_key(value)))

    def predecessor(self, value: int) -> Optional[int]:
        """Largest stored value smaller than ``value``, or None."""

        return self._value_at(self.engine.next_smaller(_key(value)))

    def _value_at(self, index: int) -> Optional[int]:
        if index == 0:
            return None
        return int(self.engine.get_value(index))

    # order statistics
    def count_smaller_than(self, x: int) -> int:
        return int(self.engine.count_smaller(_key(x)))

    def count_greater_than(self, x: int) -> int:
        return int(self.engine.count_greater(_key(x)))

    def k_smallest(self, k: int) -> int:
        """
        The k-th smallest stored value, counting from 1.

        :raises InvalidArgument: if ``k`` is not an integer in ``[1, len(self)]``
        """

        if isinstance(k, bool) or not isinstance(k, Integral):
            raise InvalidArgument(f"k must be an integer, not {k!r}")

        count = len(self)
        if k < 1 or k > count:
            raise InvalidArgument(f"impossible value for k: {k} (expected 1..{count})")

        return int(self.engine.k_smallest(np.int64(k)))

    # traversal / display
    def inorder(self) -> Traversal:
        return Traversal(self, "in")

    def preorder(self) -> Traversal:
        return Traversal(self, "pre")

    def postorder(self) -> Traversal:
        return Traversal(self, "post")

    def traversal(self, order: str) -> Traversal:
        return Traversal(self, order)

    def __iter__(self) -> Iterator[int]:
        return iter(self.inorder())

    def to_array(self) -> np.ndarray:
        return self.engine.inorder()

    def shape(self) -> Shape:
        """Nested ``(value, left, right)`` tuples, None for an absent subtree."""

        tree = self.engine.tree

        def build(index: int) -> Shape:
            if index == 0:
                return None
            return (
                int(tree[index, VALUE]),
                build(int(tree[index, LEFT])),
                build(int(tree[index, RIGHT])),
            )

        return build(int(self.engine.root))

    def render(self, indent: str = "    ") -> str:
        """
        Sideways drawing of the tree: right subtree above, left subtree below,
        one value per line indented by depth. The root line reads ``Root -> v``.
        Meant for humans; the format is not stable.
        """

        tree  = self.engine.tree
        root  = int(self.engine.root)
        lines: List[str] = []

        def show(index: int, level: int) -> None:
            if index == 0:
                return
            show(int(tree[index, RIGHT]), level + 1)
            value = int(tree[index, VALUE])
            if index == root:
                lines.append(f"Root -> {value}")
            else:
                lines.append(f"{indent * level}{value}")
            show(int(tree[index, LEFT]), level + 1)

        show(root, 0)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"BalancedIndex(size={len(self)}, height={self.height()})"
