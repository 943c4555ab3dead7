"""Export the places tree as flat rows for the presentation layer.

Rows come out in pre-order and link to each other by id (``parent_id``,
``children``) with an explicit ``depth``, so documents of any nesting
depth serialize without recursion.

The filter text decides which nodes are rendered: a node appears when its
name contains the text (case-insensitive) or any descendant's does. It
never affects entity visibility.
"""

from __future__ import annotations

from kmlview.layers.tree import FeatureNode, PlaceTree


def matches_filter(node: FeatureNode, filter_text: str) -> bool:
    q = filter_text.strip().lower()
    if not q:
        return True
    return q in node.name.lower()


def subtree_matches(tree: PlaceTree, filter_text: str) -> set[int]:
    """Ids of nodes that match the filter themselves or through a descendant."""
    order = list(tree.walk())
    matched: set[int] = set()
    # Reverse pre-order visits every child before its parent
    for node in reversed(order):
        if matches_filter(node, filter_text) or any(c in matched for c in node.children):
            matched.add(node.id)
    return matched


def export_rows(tree: PlaceTree, filter_text: str = "") -> list[dict]:
    """Export the rendered part of the tree as rows in display order.

    Children of a collapsed folder, and nodes outside the filter, are not
    rendered. The first row is the root; an empty list means nothing
    matches the filter.

    Args:
        tree: The places tree.
        filter_text: Current filter; blank shows everything.

    Returns:
        List of row dicts, parents before their children.
    """
    matched = subtree_matches(tree, filter_text)
    if tree.root_id not in matched:
        return []

    rows: list[dict] = []
    stack = [(tree.root_id, 0)]
    while stack:
        node_id, depth = stack.pop()
        node = tree.nodes_by_id[node_id]
        row = _node_to_row(node, depth, matched)
        rows.append(row)
        stack.extend((cid, depth + 1) for cid in reversed(row["children"]))
    return rows


def _node_to_row(node: FeatureNode, depth: int, matched: set[int]) -> dict:
    visible_children = [cid for cid in node.children if cid in matched]
    meta = "Placemark" if node.is_placemark else f"{len(visible_children)} items"

    return {
        "id": node.id,
        "parent_id": node.parent_id,
        "depth": depth,
        "name": node.name,
        "kind": node.kind.value,
        "checked": node.checked,
        "indeterminate": node.indeterminate,
        "expanded": node.expanded,
        "meta": meta,
        "toggle_disabled": not node.children or not visible_children,
        "children": visible_children if node.expanded else [],
    }
