"""Tri-state toggle engine for the places tree.

Two one-directional passes keep the tree consistent:

- cascade down: ``set_checked_recursive`` overwrites a subtree,
- recompute up: ``recompute_indeterminate_up`` re-derives each ancestor
  from its children.

A node is "effectively" checked only when it and every ancestor are
checked; that is the query visibility projection uses.
"""

from __future__ import annotations

from kmlview.layers.tree import PlaceTree


def set_checked_recursive(tree: PlaceTree, node_id: int, checked: bool) -> None:
    """Set checked on a node and all descendants, clearing indeterminate."""
    stack = [node_id]
    while stack:
        node = tree.get(stack.pop())
        if node is None:
            continue
        node.checked = checked
        node.indeterminate = False
        stack.extend(node.children)


def recompute_indeterminate_up(tree: PlaceTree, node_id: int) -> None:
    """Re-derive checked/indeterminate from children, from ``node_id`` to the root."""
    current_id: int | None = node_id
    while current_id is not None:
        node = tree.get(current_id)
        if node is None:
            break

        if not node.children:
            node.indeterminate = False
        else:
            children = [tree.get(cid) for cid in node.children]
            all_checked = all(c is not None and c.checked and not c.indeterminate for c in children)
            all_unchecked = all(c is None or (not c.checked and not c.indeterminate) for c in children)

            if all_checked:
                node.checked, node.indeterminate = True, False
            elif all_unchecked:
                node.checked, node.indeterminate = False, False
            else:
                node.checked, node.indeterminate = True, True

        current_id = node.parent_id


def set_expanded_recursive(tree: PlaceTree, node_id: int, expanded: bool) -> None:
    """Set expanded on a node and every descendant that has children."""
    stack = [node_id]
    while stack:
        node = tree.get(stack.pop())
        if node is None or not node.children:
            continue
        node.expanded = expanded
        stack.extend(node.children)


def get_effective_checked(tree: PlaceTree, node_id: int) -> bool:
    """True iff the node and every ancestor up to the root are checked."""
    node = tree.get(node_id)
    if node is None or not node.checked:
        return False
    return all(ancestor.checked for ancestor in tree.ancestors(node_id))


def toggle_expand(tree: PlaceTree, node_id: int) -> bool:
    """Flip expanded on a node with children. Returns True if it changed."""
    node = tree.get(node_id)
    if node is None or not node.children:
        return False
    node.expanded = not node.expanded
    return True


def toggle_checked(tree: PlaceTree, node_id: int, checked: bool) -> None:
    """Apply a user check/uncheck: cascade down, then recompute the ancestors."""
    node = tree.get(node_id)
    if node is None:
        return
    set_checked_recursive(tree, node_id, checked)
    if node.parent_id is not None:
        recompute_indeterminate_up(tree, node.parent_id)


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------

def check_all(tree: PlaceTree) -> None:
    set_checked_recursive(tree, tree.root_id, True)


def uncheck_all(tree: PlaceTree) -> None:
    """Uncheck everything; the root stays checked + indeterminate ("nothing selected")."""
    set_checked_recursive(tree, tree.root_id, False)
    root = tree.root
    root.checked = True
    root.indeterminate = True


def expand_all(tree: PlaceTree) -> None:
    set_expanded_recursive(tree, tree.root_id, True)


def collapse_all(tree: PlaceTree) -> None:
    """Collapse everything, then re-expand the root so the tree stays navigable."""
    set_expanded_recursive(tree, tree.root_id, False)
    tree.root.expanded = True
