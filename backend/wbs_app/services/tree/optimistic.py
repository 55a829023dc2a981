"""Client-side predictions of tree edits.

Functions here never touch their input: each returns a new list of roots in
which only the nodes along the edited paths are copied. A prediction is thrown
away as soon as the authoritative tree is fetched again.
"""
from dataclasses import dataclass, replace

from wbs_app.services.tree.builder import TreeNode
from wbs_app.services.tree.planner import Relation


@dataclass(frozen=True)
class TreeSnapshot:
    version: int
    roots: tuple[TreeNode, ...]
    optimistic: bool = False

    def next(self, roots, optimistic: bool) -> "TreeSnapshot":
        return TreeSnapshot(version=self.version + 1, roots=tuple(roots), optimistic=optimistic)


def add_local(tree: list[TreeNode], parent_id: int | None, new_node: TreeNode) -> list[TreeNode]:
    if parent_id is None:
        return [*tree, replace(new_node, parent_id=None, level=0)]

    def visit(nodes: list[TreeNode]) -> list[TreeNode] | None:
        for i, node in enumerate(nodes):
            if node.id == parent_id:
                child = replace(new_node, parent_id=parent_id, level=node.level + 1)
                return nodes[:i] + [replace(node, children=[*node.children, child])] + nodes[i + 1:]
            sub = visit(node.children)
            if sub is not None:
                return nodes[:i] + [replace(node, children=sub)] + nodes[i + 1:]
        return None

    updated = visit(tree)
    return tree if updated is None else updated


def _detach(nodes: list[TreeNode], node_id: int) -> tuple[list[TreeNode], TreeNode | None]:
    for i, node in enumerate(nodes):
        if node.id == node_id:
            return nodes[:i] + nodes[i + 1:], node
        sub, found = _detach(node.children, node_id)
        if found is not None:
            return nodes[:i] + [replace(node, children=sub)] + nodes[i + 1:], found
    return nodes, None


def _relevel(node: TreeNode, level: int, parent_id: int | None) -> TreeNode:
    return replace(
        node,
        parent_id=parent_id,
        level=level,
        children=[_relevel(c, level + 1, node.id) for c in node.children],
    )


def _insert(
    nodes: list[TreeNode],
    moving: TreeNode,
    target_id: int,
    relation: Relation,
    parent: TreeNode | None,
) -> list[TreeNode] | None:
    for i, node in enumerate(nodes):
        if node.id == target_id:
            if relation is Relation.inside:
                placed = _relevel(moving, node.level + 1, node.id)
                return nodes[:i] + [replace(node, children=[*node.children, placed])] + nodes[i + 1:]
            placed = _relevel(moving, node.level, parent.id if parent else None)
            at = i if relation is Relation.above else i + 1
            return nodes[:at] + [placed] + nodes[at:]
        sub = _insert(node.children, moving, target_id, relation, node)
        if sub is not None:
            return nodes[:i] + [replace(node, children=sub)] + nodes[i + 1:]
    return None


def move_local(tree: list[TreeNode], node_id: int, target_id: int, relation: Relation | str) -> list[TreeNode]:
    relation = Relation(relation)
    remaining, moving = _detach(tree, node_id)
    if moving is None:
        return tree
    # target missing, or it travelled with the detached subtree
    moved = _insert(remaining, moving, target_id, relation, None)
    return tree if moved is None else moved
