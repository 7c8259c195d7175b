import numpy as np
from numba import njit, prange, int64
from numba.experimental import jitclass
from typing import Tuple



# Arena layout:
#     tree[N, 4] (int64): [value | left | right | height]
#     Row 0 is the null sentinel. It is never written, so an absent child
#     (index 0) always reads as value 0, no children and height 0.



# tree[N, FIELDS]: [value | left | right | height]
VALUE      = 0
LEFT       = 1
RIGHT      = 2
HEIGHT     = 3
FIELDS     = 4
PATH_DEPTH = 128 # > 1.44 * log2(2 ** 63 + 2), enough for any int64-addressable tree



# ---------- JIT-Compiled Accessors / Updaters for Arena Rows ----------
@njit(inline="always")
def set_node(
    tree:   np.ndarray,
    index:  np.int64,
    value:  np.int64,
    left:   np.int64,
    right:  np.int64,
    height: np.int64

) -> None:

    """
    Write all four fields of a node row in one go.
    Compatible with Numba nopython mode.
    """

    tree[index, VALUE]  = value
    tree[index, LEFT]   = left
    tree[index, RIGHT]  = right
    tree[index, HEIGHT] = height

@njit(inline="always")
def get_node(
    tree:  np.ndarray,
    index: np.int64

) -> Tuple[np.int64, np.int64, np.int64, np.int64]:

    """
    Get a node from tree by index as (value, left, right, height).
    """

    return tree[index, VALUE], tree[index, LEFT], tree[index, RIGHT], tree[index, HEIGHT]

@njit(inline="always")
def _update_height(
    tree:  np.ndarray,
    index: np.int64

) -> None:

    """
    Recompute the cached height of a node from its children:
    height(index) = max(height(index->left), height(index->right)) + 1
    """

    tree[index, HEIGHT] = max(
        tree[tree[index, LEFT], HEIGHT],
        tree[tree[index, RIGHT], HEIGHT]
    ) + 1

@njit(inline="always")
def balance_factor(
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Left subtree height minus right subtree height. 0 for the sentinel.
    """

    return tree[tree[index, LEFT], HEIGHT] - tree[tree[index, RIGHT], HEIGHT]

@njit(inline="always")
def _allocate(
    free:          np.int64,
    free_list:     np.ndarray,
    free_list_top: np.int64

) -> Tuple[np.int64, np.int64, np.int64]:

    """
    Take a row for a new node: recycled rows first, then the next unused one.

    :return: (row index, updated free, updated free_list_top)
    """

    if free_list_top > 0:
        free_list_top -= 1
        return free_list[free_list_top], free, free_list_top

    return free, free + 1, free_list_top

@njit
def _grow(
    tree:      np.ndarray,
    free_list: np.ndarray,
    new_size:  np.int64

) -> Tuple[np.ndarray, np.ndarray]:

    """
    Copy the arena and its free list into buffers of `new_size` rows.
    Indices are stable: every live row keeps its position.
    """

    new_tree = np.zeros((new_size, FIELDS), dtype=np.int64)
    new_tree[:tree.shape[0], :] = tree

    new_free_list = np.zeros(new_size, dtype=np.int64)
    new_free_list[:free_list.shape[0]] = free_list

    return new_tree, new_free_list



# ---------- JIT-Compiled Rotation Primitives ----------
@njit(inline="always")
def right_rotation( # SRR: Single Right Rotation
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Perform a single right rotation (SRR) on the subtree rooted at `index`.

    This rotation is applied when a node becomes left-heavy and its left
    child is not right-heavy. The left child becomes the new local root,
    its former right subtree becomes the old root's left subtree.
    Heights are recomputed bottom-up: old root first, then the new root.

    :param tree: Arena holding the AVL nodes
    :type tree: np.ndarray
    :param index: Index of the subtree root to rotate
    :type index: np.int64
    :return: Index of the new root of the rotated subtree
    :rtype: np.int64
    """

    left_index = tree[index, LEFT]

    # Rotate
    tree[index, LEFT]       = tree[left_index, RIGHT]
    tree[left_index, RIGHT] = index

    # Update heights
    _update_height(tree, index)
    _update_height(tree, left_index)

    return left_index # new root

@njit(inline="always")
def left_rotation( # SLR: Single Left Rotation
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Perform a single left rotation (SLR) on the subtree rooted at `index`.

    This rotation is applied when a node becomes right-heavy.
    The right child of the target node becomes the new root of the subtree,
    and the target node becomes the left child of that node.

    The function:
    - Rewires the subtree pointers in the arena
    - Recomputes heights bottom-up according to AVL rules
    - Modifies the tree in-place

    :param tree: Arena holding the AVL nodes
    :type tree: np.ndarray
    :param index: Index of the subtree root to rotate
    :type index: np.int64
    :return: Index of the new root after rotation
    :rtype: np.int64
    """

    right_index = tree[index, RIGHT]

    # Rotate
    tree[index, RIGHT]       = tree[right_index, LEFT]
    tree[right_index, LEFT]  = index

    # Update heights
    _update_height(tree, index)
    _update_height(tree, right_index)

    return right_index # new root

@njit(inline="always")
def left_right_rotation( # LR: Left-Right double rotation
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Left-rotate the left child, then right-rotate `index`.
    Handles a left-heavy node whose left child is right-heavy.
    """

    tree[index, LEFT] = left_rotation(tree, tree[index, LEFT])
    return right_rotation(tree, index)

@njit(inline="always")
def right_left_rotation( # RL: Right-Left double rotation
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Right-rotate the right child, then left-rotate `index`.
    Handles a right-heavy node whose right child is left-heavy.
    """

    tree[index, RIGHT] = right_rotation(tree, tree[index, RIGHT])
    return left_rotation(tree, index)

@njit(inline="always")
def balance(
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Restore the AVL condition at `index` with at most one (single or double)
    rotation and return the index of the resulting local root.

        bf > 1,  left child bf >= 0  -> right rotation       (LL)
        bf > 1,  left child bf <  0  -> left-right rotation  (LR)
        bf < -1, right child bf > 0  -> right-left rotation  (RL)
        bf < -1, right child bf <= 0 -> left rotation        (RR)

    Heights of both children must already be current.
    """

    bf = balance_factor(tree, index)

    if bf > 1: # L
        if balance_factor(tree, tree[index, LEFT]) >= 0: # LL
            return right_rotation(tree, index)
        return left_right_rotation(tree, index) # LR

    elif bf < -1: # R
        if balance_factor(tree, tree[index, RIGHT]) > 0: # RL
            return right_left_rotation(tree, index)
        return left_rotation(tree, index) # RR

    return index

@njit(inline="always")
def _retrace(
    tree:       np.ndarray,
    root:       np.int64,
    path:       np.ndarray,
    path_index: np.int64

) -> np.int64:

    """
    Walk the recorded ancestors bottom-up, refreshing heights, rebalancing
    every node and relinking each rotated subtree into its parent.

    :return: The (possibly new) tree root
    :rtype: np.int64
    """

    for i in range(path_index - 1, -1, -1):
        node_index = path[i]
        _update_height(tree, node_index)

        new_sub_root = balance(tree, node_index)

        if new_sub_root != node_index:
            if i > 0:
                parent_index = path[i - 1]
                if tree[parent_index, LEFT] == node_index:
                    tree[parent_index, LEFT] = new_sub_root
                else:
                    tree[parent_index, RIGHT] = new_sub_root
            else:
                root = new_sub_root

    return root



# ---------- JIT-Compiled AVL Core Operations ----------
@njit(inline="always")
def get_successor(
    tree:       np.ndarray,
    index:      np.int64,
    path:       np.ndarray,
    path_index: np.int64
) -> Tuple[np.int64, np.int64]:

    """
    Locates the in-order successor of a node and updates the traversal path.

    The in-order successor of a node with a right child is the smallest node
    in its right subtree. This function moves to the right child and then
    follows the left pointers to the leftmost node, while simultaneously
    recording these nodes in the 'path' array to ensure proper rebalancing
    after the value copy.

    Args:
        tree (np.ndarray): Arena [N, 4] containing the AVL nodes.
        index (np.int64): The index of the node whose successor is needed.
            Must have a right child.
        path (np.ndarray): Array to store the traversal path for rebalancing.
        path_index (np.int64): The current write position in the path array.

    Returns:
        Tuple[np.int64, np.int64]:
            - successor_index: The index of the in-order successor.
            - updated_path_index: The new path_index after adding the successor's lineage.
    """

    current = tree[index, RIGHT]

    while current != 0:
        path[path_index] = current
        path_index += 1
        current = tree[current, LEFT]

    return path[path_index - 1], path_index

@njit(boundscheck=False)
def insert(
    tree:          np.ndarray,
    root:          np.int64 ,
    free:          np.int64 , # start from 1
    free_list:     np.ndarray,
    free_list_top: np.int64  ,
    path:          np.ndarray, # use in rebalancing
    value:         np.int64

) -> Tuple[np.int64, np.int64, np.int64, np.uint8]:

    """
    Insert a new value into the array-based AVL tree with rebalancing.
    Equal values are rejected and leave the tree untouched.

    The caller must guarantee a free row exists (see `AVLIndexTree._reserve`).

    Parameters
    ----------
    tree : np.ndarray
        The arena holding all nodes of the AVL tree.
    root : np.int64
        Index of the current root node (0 if tree is empty).
    free : np.int64
        Next unused index in `tree` if free_list is empty.
    free_list : np.ndarray
        Stack of previously freed node indices for reuse.
    free_list_top : np.int64
        Top index of the free_list stack (0 if empty).
    path : np.ndarray
        Preallocated array to store the traversal path for bottom-up rebalancing.
    value : np.int64
        The value to insert into the AVL tree.

    Returns
    -------
    Tuple[np.int64, np.int64, np.int64, np.uint8]
        Updated (root, free, free_list_top, inserted) after insertion.
    """

    # Descend to the empty slot
    current_index = root
    path_index    = 0
    while current_index != 0:
        current_value = tree[current_index, VALUE]

        if value == current_value:
            return root, free, free_list_top, np.uint8(0)

        path[path_index] = current_index
        path_index += 1

        if value < current_value: # Left
            current_index = tree[current_index, LEFT]
        else: # Right
            current_index = tree[current_index, RIGHT]

    # New leaf
    new_index, free, free_list_top = _allocate(free, free_list, free_list_top)
    set_node(tree, new_index, value, 0, 0, 1)

    # First node
    if path_index == 0:
        return new_index, free, free_list_top, np.uint8(1)

    parent_index = path[path_index - 1]
    if value < tree[parent_index, VALUE]:
        tree[parent_index, LEFT] = new_index
    else:
        tree[parent_index, RIGHT] = new_index

    # Rebalancing
    root = _retrace(tree, root, path, path_index)

    return root, free, free_list_top, np.uint8(1)

@njit(boundscheck=False)
def remove(
    tree:           np.ndarray,
    root:           np.int64,
    free_list:      np.ndarray,
    free_list_top:  np.int64,
    path:           np.ndarray,
    value:          np.int64

) -> Tuple[np.uint8, np.int64, np.int64]:

    """
    Iterative AVL tree node deletion with explicit row recycling.

    Performs a non-recursive removal of a value from the array-based AVL tree.
    The process involves:
    1. Path Discovery: Traverses to the target node while recording the traversal
    history in 'path' to facilitate bottom-up rebalancing.
    2. Logical Deletion: Handles leaf, single-child, and two-child cases
    (the two-child case copies the in-order successor's value into the target
    and splices the successor's row out instead).
    3. Memory Recycling: Clears the physically removed row, pushes its index
    onto 'free_list' and increments 'free_list_top'.
    4. Retracing & Rebalancing: Updates heights and performs necessary AVL
    rotations (LL, LR, RR, RL) from the point of deletion up to the root.

    Args:
        tree (np.ndarray): Arena [N, 4] storing node data.
        root (np.int64): Index of the current tree root.
        free_list (np.ndarray): Stack of available indices for node recycling.
        free_list_top (np.int64): Current pointer to the top of the free_list.
        path (np.ndarray): Scratchpad array to store the ancestor indices.
        value (np.int64): The target value to be removed.

    Returns:
        Tuple[np.uint8, np.int64, np.int64]:
            - success_flag (1 if found/deleted, 0 otherwise).
            - new_root_index.
            - updated_free_list_top.
    """

    if root == 0:
        return np.uint8(0), root, free_list_top

    # Search
    path_index    = 0
    current_index = root

    while current_index != 0:
        path[path_index] = current_index
        path_index += 1

        current_value = tree[current_index, VALUE]

        if value == current_value:
            break
        elif value < current_value:
            current_index = tree[current_index, LEFT]
        else:
            current_index = tree[current_index, RIGHT]

    if current_index == 0:
        return np.uint8(0), root, free_list_top

    target_index = current_index

    if tree[target_index, LEFT] != 0 and tree[target_index, RIGHT] != 0:
        successor_index, path_index = get_successor(tree, target_index, path, path_index)
        tree[target_index, VALUE]   = tree[successor_index, VALUE]
        removed_index               = successor_index
    else:
        removed_index = target_index

    replacement = tree[removed_index, LEFT]
    if replacement == 0:
        replacement = tree[removed_index, RIGHT]

    if path_index > 1:
        parent_index = path[path_index - 2]
        if tree[parent_index, LEFT] == removed_index:
            tree[parent_index, LEFT] = replacement
        else:
            tree[parent_index, RIGHT] = replacement
    else:
        root = replacement

    set_node(tree, removed_index, 0, 0, 0, 0)
    free_list[free_list_top] = removed_index
    free_list_top += 1

    # Rebalancing (every ancestor of the removed row)
    root = _retrace(tree, root, path, path_index - 1)

    return np.uint8(1), root, free_list_top

@njit(inline="always")
def search_single(
    tree:  np.ndarray,
    root:  np.int64,
    value: np.int64

) -> np.int64:

    """
    Performs a fast iterative search for a single value in the array-based AVL tree.

    This is a low-level utility designed to be inlined into larger search loops.
    It traverses the tree using binary search logic without recursion overhead.

    Args:
        tree (np.ndarray): Arena [N, 4] containing the AVL nodes.
        root (np.int64): The index of the root node to start the search from.
        value (np.int64): The specific value to locate within the tree.

    Returns:
        np.int64: The index of the node containing the value if found;
                otherwise, returns 0.
    """

    current_index = root
    while current_index != 0:
        value_curr = tree[current_index, VALUE]

        if value == value_curr:
            return current_index

        elif value < value_curr:
            current_index = tree[current_index, LEFT]

        else:
            current_index = tree[current_index, RIGHT]

    return np.int64(0)

@njit(parallel=True)
def search_bulk(
    tree:   np.ndarray,
    root:   np.int64,
    values: np.ndarray

) -> np.ndarray:

    """
    Executes parallel searches for multiple values across the AVL tree.

    This function utilizes Numba's 'prange' to distribute search queries across
    all available CPU cores. Lookups only read the arena, so concurrent
    'search_single' calls are safe as long as no writer runs meanwhile.

    Args:
        tree (np.ndarray): Arena [N, 4] containing the AVL nodes.
        root (np.int64): The index of the tree root (shared across all threads).
        values (np.ndarray): 1D array of target values (int64) to search for.

    Returns:
        np.ndarray: A 1D array of int64 indices corresponding to the position
                    of each input value in the tree. Returns 0 for values not found.
    """

    size    = values.size
    results = np.zeros(size, dtype=np.int64)
    for i in prange(size):
        results[i] = search_single(
            tree, root, values[i]
        )

    return results

@njit(inline="always")
def next_greater(
    tree:  np.ndarray,
    root:  np.int64,
    value: np.int64

) -> np.int64:

    """
    Index of the node holding the smallest value strictly greater than
    `value`, or 0 if there is none. `value` need not be stored.
    """

    best    = np.int64(0)
    current = root
    while current != 0:
        if tree[current, VALUE] > value:
            best    = current
            current = tree[current, LEFT]
        else:
            current = tree[current, RIGHT]

    return best

@njit(inline="always")
def next_smaller(
    tree:  np.ndarray,
    root:  np.int64,
    value: np.int64

) -> np.int64:

    """
    Index of the node holding the largest value strictly smaller than
    `value`, or 0 if there is none.
    """

    best    = np.int64(0)
    current = root
    while current != 0:
        if tree[current, VALUE] < value:
            best    = current
            current = tree[current, RIGHT]
        else:
            current = tree[current, LEFT]

    return best



# ---------- JIT-Compiled Order Statistics ----------
@njit
def count_nodes(
    tree:  np.ndarray,
    index: np.int64,
    stack: np.ndarray

) -> np.int64:

    """
    Count every node of the subtree rooted at `index` (0 for the sentinel).

    Subtree sizes are not cached, so this is a full walk. The explicit
    stack never holds more than height + 1 entries.
    """

    if index == 0:
        return np.int64(0)

    total     = np.int64(0)
    stack_idx = 0

    stack[stack_idx] = index
    stack_idx += 1

    while stack_idx > 0:
        stack_idx -= 1
        current = stack[stack_idx]
        total += 1

        if tree[current, RIGHT] != 0:
            stack[stack_idx] = tree[current, RIGHT]
            stack_idx += 1

        if tree[current, LEFT] != 0:
            stack[stack_idx] = tree[current, LEFT]
            stack_idx += 1

    return total

@njit
def count_smaller(
    tree:  np.ndarray,
    root:  np.int64,
    x:     np.int64,
    stack: np.ndarray

) -> np.int64:

    """
    Number of stored values strictly smaller than `x`.

    Descends once from the root:
    - value == x: add the left subtree and stop (x itself is excluded)
    - value <  x: add the node and its left subtree, continue right
    - value >  x: continue left, the right subtree is entirely >= x
    """

    total   = np.int64(0)
    current = root

    while current != 0:
        current_value = tree[current, VALUE]

        if current_value == x:
            total += count_nodes(tree, tree[current, LEFT], stack)
            break

        elif current_value < x:
            total  += 1 + count_nodes(tree, tree[current, LEFT], stack)
            current = tree[current, RIGHT]

        else:
            current = tree[current, LEFT]

    return total

@njit
def count_greater(
    tree:  np.ndarray,
    root:  np.int64,
    x:     np.int64,
    stack: np.ndarray

) -> np.int64:

    """
    Number of stored values strictly greater than `x`. Mirror of `count_smaller`.
    """

    total   = np.int64(0)
    current = root

    while current != 0:
        current_value = tree[current, VALUE]

        if current_value == x:
            total += count_nodes(tree, tree[current, RIGHT], stack)
            break

        elif current_value > x:
            total  += 1 + count_nodes(tree, tree[current, RIGHT], stack)
            current = tree[current, LEFT]

        else:
            current = tree[current, RIGHT]

    return total

@njit(boundscheck=False)
def k_smallest(
    tree:  np.ndarray,
    root:  np.int64,
    count: np.int64,
    k:     np.int64

) -> np.int64:

    """
    Return the k-th smallest value (1-indexed) with a threaded (Morris)
    in-order walk.

    No stack or recursion is used: while descending into a left subtree the
    walk points the in-order predecessor's empty right link back at the
    current node, and removes that thread on the second visit. The walk
    always runs to completion so that every thread is removed again; the
    arena is identical to its prior state once this returns.

    The arena is temporarily inconsistent, so nothing else may read or
    write it during the call.

    :param tree: Arena holding the AVL nodes
    :type tree: np.ndarray
    :param root: Index of the tree root
    :type root: np.int64
    :param count: Number of live nodes
    :type count: np.int64
    :param k: Rank of the wanted value, 1 <= k <= count
    :type k: np.int64
    :return: The k-th smallest value
    :rtype: np.int64
    """

    if k < 1 or k > count:
        raise ValueError("impossible value for k")

    visited = np.int64(0)
    result  = np.int64(0)
    current = root

    while current != 0:
        left = tree[current, LEFT]

        if left == 0:
            visited += 1
            if visited == k:
                result = tree[current, VALUE]
            current = tree[current, RIGHT]

        else:
            predecessor = left
            while tree[predecessor, RIGHT] != 0 and tree[predecessor, RIGHT] != current:
                predecessor = tree[predecessor, RIGHT]

            if tree[predecessor, RIGHT] == 0: # thread
                tree[predecessor, RIGHT] = current
                current = left

            else: # unthread
                tree[predecessor, RIGHT] = 0
                visited += 1
                if visited == k:
                    result = tree[current, VALUE]
                current = tree[current, RIGHT]

    return result

@njit
def measure_height(
    tree:  np.ndarray,
    index: np.int64,
    stack: np.ndarray

) -> np.int64:

    """
    Height of the subtree at `index` by full descent, ignoring cached heights.
    Used to audit the cache.
    """

    if index == 0:
        return np.int64(0)

    depths    = np.zeros(stack.shape[0], dtype=np.int64)
    height    = np.int64(0)
    stack_idx = 0

    stack[stack_idx]  = index
    depths[stack_idx] = 1
    stack_idx += 1

    while stack_idx > 0:
        stack_idx -= 1
        current = stack[stack_idx]
        depth   = depths[stack_idx]

        if depth > height:
            height = depth

        if tree[current, RIGHT] != 0:
            stack[stack_idx]  = tree[current, RIGHT]
            depths[stack_idx] = depth + 1
            stack_idx += 1

        if tree[current, LEFT] != 0:
            stack[stack_idx]  = tree[current, LEFT]
            depths[stack_idx] = depth + 1
            stack_idx += 1

    return height



# --------- Utils ---------
@njit
def warmup(tree_size: int = 100):
    """
    Minimally triggers JIT compilation for core AVL operations.
    """

    avl         = AVLIndexTree(tree_size)
    warmup_data = np.array([30, 20, 10, 40, 50, 25], dtype=np.int64)

    for x in warmup_data:
        avl.insert(x)

    _ = avl.search(20)

    queries = np.array([10, 25, 99], dtype=np.int64)
    _ = avl.search_bulk(queries)

    _ = avl.count_smaller(25)
    _ = avl.count_greater(25)
    _ = avl.k_smallest(3)

    avl.remove(10)

    return len(avl) == 5

@njit
def build_index(
    data: np.ndarray

) -> 'AVLIndexTree':

    """
    Builds and populates an AVLIndexTree from a NumPy array at machine speed.

    Args:
        data (np.ndarray): 1D array of int64 values to insert. Duplicates are skipped.

    Returns:
        AVLIndexTree: A balanced tree containing every distinct element of data.
    """

    avl = AVLIndexTree(data.size)

    for i in range(data.size):
        avl.insert(data[i])

    return avl

@njit
def fill_index(
    avl:  'AVLIndexTree',
    data: np.ndarray

) -> None:

    """
    Populates an existing AVLIndexTree with multiple values in a JIT loop.

    Args:
        avl (AVLIndexTree): An instance of the AVLIndexTree class to be populated.
        data (np.ndarray): 1D array of int64 values to be inserted into the tree.
    """

    for i in range(data.size):
        avl.insert(data[i])

@njit
def remove_bulk(
    tree:   'AVLIndexTree',
    values: np.ndarray

) -> None:
    """
    Perform batch removal of multiple values from the AVL tree.

    This function is JIT-compiled for sequential deletions.
    It iterates through the provided array and calls the tree's internal
    remove method for each element, maintaining AVL balance at each step.

    Args:
        tree (AVLIndexTree): The jitclass instance of the AVL Tree.
        values (np.ndarray): A 1D NumPy array containing the values to be removed.

    Note:
        If a value in the array does not exist in the tree, it will be
        silently ignored (as per the tree.remove implementation).
    """

    for i in range(values.size):
        tree.remove(values[i])

@njit
def inorder_traversal( # LVR
    tree:         np.ndarray,
    root:         np.int64,
    current_size: np.int64

) -> np.ndarray:
    """
    Extracts all tree values in ascending order.
    """

    traverse = np.zeros(current_size, dtype=np.int64)
    stack    = np.zeros(PATH_DEPTH, dtype=np.int64)

    current_index = root
    stack_idx     = 0
    traverse_idx  = 0

    while traverse_idx < current_size:

        while current_index != 0:
            stack[stack_idx] = current_index
            stack_idx += 1
            current_index = tree[current_index, LEFT]

        if stack_idx > 0:
            stack_idx -= 1
            current_index = stack[stack_idx]

            traverse[traverse_idx] = tree[current_index, VALUE]
            traverse_idx += 1

            current_index = tree[current_index, RIGHT]

        else:
            break

    return traverse

@njit
def preorder_traversal( # VLR
    tree:         np.ndarray,
    root:         np.int64,
    current_size: np.int64

) -> np.ndarray:
    """
    Extracts all tree values in pre-order (node, left subtree, right subtree).
    """

    traverse = np.zeros(current_size, dtype=np.int64)
    if root == 0:
        return traverse

    stack        = np.zeros(PATH_DEPTH, dtype=np.int64)
    stack[0]     = root
    stack_idx    = 1
    traverse_idx = 0

    while stack_idx > 0:
        stack_idx -= 1
        current_index = stack[stack_idx]

        traverse[traverse_idx] = tree[current_index, VALUE]
        traverse_idx += 1

        if tree[current_index, RIGHT] != 0:
            stack[stack_idx] = tree[current_index, RIGHT]
            stack_idx += 1

        if tree[current_index, LEFT] != 0:
            stack[stack_idx] = tree[current_index, LEFT]
            stack_idx += 1

    return traverse

@njit
def postorder_traversal( # LRV
    tree:         np.ndarray,
    root:         np.int64,
    current_size: np.int64

) -> np.ndarray:
    """
    Extracts all tree values in post-order (left subtree, right subtree, node).

    Walks node-right-left and fills the output from the back, which yields
    left-right-node once read front to back.
    """

    traverse = np.zeros(current_size, dtype=np.int64)
    if root == 0:
        return traverse

    stack        = np.zeros(PATH_DEPTH, dtype=np.int64)
    stack[0]     = root
    stack_idx    = 1
    traverse_idx = current_size - 1

    while stack_idx > 0:
        stack_idx -= 1
        current_index = stack[stack_idx]

        traverse[traverse_idx] = tree[current_index, VALUE]
        traverse_idx -= 1

        if tree[current_index, LEFT] != 0:
            stack[stack_idx] = tree[current_index, LEFT]
            stack_idx += 1

        if tree[current_index, RIGHT] != 0:
            stack[stack_idx] = tree[current_index, RIGHT]
            stack_idx += 1

    return traverse


# --------- AVLIndexTree API ---------
spec = [
    ("size"          , int64),
    ("count"         , int64),
    ("tree"          , int64[:, :]),
    ("root"          , int64),
    ("_free"         , int64),
    ("_free_list"    , int64[:]),
    ("_free_list_top", int64),
    ("_path"         , int64[:]),
    ("_stack"        , int64[:]),

]

@jitclass(spec)
class AVLIndexTree:
    """
    Array-backed AVL ordered index implemented as a Numba jitclass.

    Nodes are rows of an int64 arena addressed by stable indices; index 0 is
    the null sentinel. Removed rows go to a free list and are recycled, and
    the arena doubles when it runs out of rows, so inserts never fail.

    Attributes:
        size (int64): Number of allocated arena rows (capacity + 1).
        count (int64): Current number of live nodes in the tree.
        tree (int64[:, :]): Underlying arena [size, 4] storing the nodes.
        root (int64): Index of the current root node (0 if empty).
    """

    def __init__(
        self,
        size: int

    ) -> None:

        if size < 0:
            raise ValueError("The size value must be non-negative")


        self.size           = int64(size + 1)
        self.count          = int64(0)
        self.tree           = np.zeros((self.size, FIELDS), dtype=np.int64)
        self.root           = int64(0)
        self._free          = int64(1)
        self._free_list     = np.zeros(self.size, dtype=np.int64)
        self._free_list_top = int64(0)
        self._path          = np.zeros(PATH_DEPTH, dtype=np.int64)
        self._stack         = np.zeros(PATH_DEPTH, dtype=np.int64)

    @property
    def height(self) -> int:
        return self.tree[self.root, HEIGHT]

    @property
    def root_info(self) -> Tuple[int, int, int, int]:
        return get_node(self.tree, self.root)

    @property
    def max_index(self) -> int:
        """
        Find the index of the node with the maximum value in the tree.

        Returns:
            int: The index of the rightmost node, or 0 if the tree is empty.
        """

        current = self.root
        if current == 0:
            return current

        while self.tree[current, RIGHT] != 0:
            current = self.tree[current, RIGHT]

        return current

    @property
    def min_index(self) -> int:
        """
        Find the index of the node with the minimum value in the tree.

        Returns:
            int: The index of the leftmost node, or 0 if the tree is empty.
        """

        current = self.root
        if current == 0:
            return current

        while self.tree[current, LEFT] != 0:
            current = self.tree[current, LEFT]

        return current

    def _reserve(self) -> None:
        """Make sure one free row exists, doubling the arena if needed."""

        if self._free_list_top > 0 or self._free < self.size:
            return

        new_size        = self.size * 2
        tree, free_list = _grow(self.tree, self._free_list, new_size)

        self.tree       = tree
        self._free_list = free_list
        self.size       = new_size

    def get_node(
        self,
        index: int

    ) -> Tuple[int, int, int, int]:

        """
        Read all fields for a specific node index.

        Args:
            index (int): The index of the node in the arena.

        Returns:
            Tuple[int, int, int, int]: (value, left_index, right_index, height).
        """

        return get_node(self.tree, index)

    def get_value(
        self,
        index: int

    ) -> int:

        """
        Retrieve the stored value of a specific node (0 for the sentinel).
        """

        return self.tree[index, VALUE]

    def get_left(
        self,
        index: int

    ) -> int:

        """
        Get the index of the left child for the given node.

        Args:
            index (int): The index of the parent node.

        Returns:
            int: The index of the left child, or 0 if no child exists.
        """

        return self.tree[index, LEFT]

    def get_right(
        self,
        index: int

    ) -> int:
        """
        Get the index of the right child for the given node.

        Args:
            index (int): The index of the parent node.

        Returns:
            int: The index of the right child, or 0 if no child exists.
        """

        return self.tree[index, RIGHT]

    def get_height(
        self,
        index: int

    ) -> int:

        """
        Get the cached height of a specific node (0 for the sentinel).
        """

        return self.tree[index, HEIGHT]

    def balance_factor(
        self,
        index: int

    ) -> int:

        return balance_factor(self.tree, index)

    def measure_height(
        self,
        index: int

    ) -> int:

        return measure_height(self.tree, index, self._stack)

    def successor(
        self,
        index: int

    ) -> int:
        """
        Find the in-order successor of a node within its own subtree.

        Args:
            index (int): The index of the node to start from.

        Returns:
            int: The index of the smallest node in the right subtree,
                 or 0 if no right child exists.
        """

        current = self.tree[index, RIGHT]
        if current == 0:
            return current

        while self.tree[current, LEFT] != 0:
            current = self.tree[current, LEFT]

        return current

    def predecessor(
        self,
        index: int

    ) -> int:
        """
        Find the in-order predecessor of a node within its own subtree.

        Args:
            index (int): The index of the node to start from.

        Returns:
            int: The index of the largest node in the left subtree,
                 or 0 if no left child exists.
        """

        current = self.tree[index, LEFT]
        if current == 0:
            return current

        while self.tree[current, RIGHT] != 0:
            current = self.tree[current, RIGHT]

        return current

    def next_greater(
        self,
        value: int

    ) -> int:
        """Index of the smallest stored value above `value`, 0 if none."""

        return next_greater(self.tree, self.root, np.int64(value))

    def next_smaller(
        self,
        value: int

    ) -> int:
        """Index of the largest stored value below `value`, 0 if none."""

        return next_smaller(self.tree, self.root, np.int64(value))

    def insert(
        self,
        value: int

    ) -> int:
        """Inserts a unique value with auto-rebalancing. Returns 1 if inserted, 0 if duplicate."""

        self._reserve()

        root, free, free_list_top, inserted = insert(
            self.tree,
            self.root,
            self._free,
            self._free_list,
            self._free_list_top,
            self._path,
            np.int64(value)
        )

        self.root           = root
        self._free          = free
        self._free_list_top = free_list_top

        if inserted:
            self.count += 1
            return 1

        return 0

    def remove(
        self,
        value: int

    ) -> int:
        """Deletes a value and stabilizes the tree. Returns 1 if found and removed, 0 otherwise."""

        if self.count == 0:
            return 0

        success, root, free_list_top = remove(
            self.tree,
            self.root,
            self._free_list,
            self._free_list_top,
            self._path,
            np.int64(value)
        )

        if success:
            self.root           = root
            self._free_list_top = free_list_top
            self.count -= 1
            return 1

        return 0

    def search(
        self,
        value: int

    ) -> int:
        """Locates a value using iterative BST search. Returns the node index or 0 if not found."""

        return search_single(
            self.tree,
            self.root,
            np.int64(value)
        )

    def contains(
        self,
        value: int

    ) -> bool:

        return search_single(self.tree, self.root, np.int64(value)) != 0

    def search_bulk(
        self,
        values: np.ndarray

    ) -> np.ndarray:
        """Performs parallelized multi-value search using all available CPU cores."""

        return search_bulk(
            self.tree,
            self.root,
            values
        )

    def count_nodes(
        self,
        index: int

    ) -> int:
        """Size of the subtree rooted at `index`, by full count."""

        return count_nodes(self.tree, index, self._stack)

    def count_smaller(
        self,
        x: int

    ) -> int:

        return count_smaller(self.tree, self.root, np.int64(x), self._stack)

    def count_greater(
        self,
        x: int

    ) -> int:

        return count_greater(self.tree, self.root, np.int64(x), self._stack)

    def k_smallest(
        self,
        k: int

    ) -> int:
        """k-th smallest value (1-indexed) via threaded in-order walk. Raises ValueError if k is out of range."""

        return k_smallest(self.tree, self.root, self.count, np.int64(k))

    def update_value(
        self,
        old_value: int,
        new_value: int

    ) -> int:
        """
        Replaces a value by removal and re-insertion to maintain AVL properties.
        Returns 0 and leaves the tree untouched if `old_value` is absent or
        `new_value` is already stored under another key.
        """

        old_key = np.int64(old_value)
        new_key = np.int64(new_value)

        if old_key != new_key and search_single(self.tree, self.root, new_key) != 0:
            return 0

        if self.remove(old_key):
            self.insert(new_value)
            return 1

        return 0

    def inorder(self) -> np.ndarray:
        """
        Generates a sorted array of all elements using In-order traversal.

        WARNING: This method allocates an array of the full tree size. For
        large trees prefer the lazy traversals of BalancedIndex.
        """
        return inorder_traversal(self.tree, self.root, self.count)

    def preorder(self) -> np.ndarray:
        return preorder_traversal(self.tree, self.root, self.count)

    def postorder(self) -> np.ndarray:
        return postorder_traversal(self.tree, self.root, self.count)

    def __len__(self) -> int:
        return self.count
