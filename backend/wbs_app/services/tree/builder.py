"""Nested projection of a project's flat node list.

All traversals are pre-order depth-first (parent before children, siblings in
display order) and use an explicit stack so very deep trees do not hit the
interpreter's recursion limit.
"""
import datetime as dt
from dataclasses import dataclass, field, asdict
from typing import Any, Iterable, Iterator

from wbs_app.core.config import settings


@dataclass
class TreeNode:
    id: int
    project_id: int
    parent_id: int | None
    name: str
    description: str | None = None
    order_idx: int = 0
    level: int = 0
    wbs_code: str | None = None
    type: str = "task"
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    children: list["TreeNode"] = field(default_factory=list)

    @classmethod
    def from_record(cls, rec: Any) -> "TreeNode":
        get = rec.get if isinstance(rec, dict) else lambda k: getattr(rec, k, None)
        node_type = get("type") or "task"
        return cls(
            id=get("id"),
            project_id=get("project_id"),
            parent_id=get("parent_id"),
            name=get("name"),
            description=get("description"),
            order_idx=get("order_idx") or 0,
            level=get("level") or 0,
            wbs_code=get("wbs_code"),
            type=getattr(node_type, "value", node_type),
            created_at=get("created_at"),
            updated_at=get("updated_at"),
        )


@dataclass
class ProjectRoot:
    """Synthetic level-0 wrapper around a project's root nodes; never persisted."""

    project_id: int
    name: str
    children: list[TreeNode] = field(default_factory=list)
    level: int = 0


def build_tree(flat: Iterable[Any]) -> list[TreeNode]:
    nodes = [TreeNode.from_record(r) for r in flat]
    by_id = {n.id: n for n in nodes}
    roots: list[TreeNode] = []
    for n in nodes:
        if n.parent_id is None:
            roots.append(n)
        elif n.parent_id in by_id:
            by_id[n.parent_id].children.append(n)
        # a record whose parent is not in the input cannot be placed

    roots.sort(key=_display_key)
    for n in nodes:
        n.children.sort(key=_display_key)
    return roots


def _display_key(n: TreeNode) -> tuple[int, int]:
    return (n.order_idx, n.id)


def iter_preorder(roots: list[TreeNode]) -> Iterator[TreeNode]:
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def flatten(roots: list[TreeNode]) -> list[TreeNode]:
    return list(iter_preorder(roots))


def find_by_id(roots: list[TreeNode], node_id: int) -> TreeNode | None:
    for node in iter_preorder(roots):
        if node.id == node_id:
            return node
    return None


def path_to_root(roots: list[TreeNode], node_id: int) -> list[TreeNode]:
    """Nodes from the root down to ``node_id`` inclusive; empty when absent."""
    stack: list[tuple[TreeNode, tuple[TreeNode, ...]]] = [(r, ()) for r in reversed(roots)]
    while stack:
        node, ancestors = stack.pop()
        chain = ancestors + (node,)
        if node.id == node_id:
            return list(chain)
        stack.extend((c, chain) for c in reversed(node.children))
    return []


def search(roots: list[TreeNode], query: str) -> list[TreeNode]:
    q = query.lower()
    out = []
    for node in iter_preorder(roots):
        fields = (node.name, node.description, node.wbs_code)
        if any(f and q in f.lower() for f in fields):
            out.append(node)
    return out


def filter_by_type(roots: list[TreeNode], node_type: str) -> list[TreeNode]:
    node_type = getattr(node_type, "value", node_type)
    return [n for n in iter_preorder(roots) if n.type == node_type]


def project_root(project: Any, roots: list[TreeNode]) -> ProjectRoot:
    return ProjectRoot(project_id=project.id, name=project.name, children=roots)


def export_snapshot(roots: list[TreeNode]) -> dict[str, Any]:
    return {
        "version": settings.EXPORT_VERSION,
        "exportDate": dt.datetime.now(dt.timezone.utc).isoformat(),
        "nodes": [asdict(r) for r in roots],
    }
