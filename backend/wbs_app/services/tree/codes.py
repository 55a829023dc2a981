from typing import Iterable

from sqlalchemy.orm import Session

from wbs_app.db.models.wbs import WbsNode
from wbs_app.services.tree.planner import NodeRecord, children_index, descendant_ids
from wbs_app.services.tree.reindex import sibling_query


def generate_code(db: Session, node_id: int) -> str | None:
    node = db.get(WbsNode, node_id)
    if node is None:
        return None

    path: list[WbsNode] = []
    seen: set[int] = set()
    cur: WbsNode | None = node
    while cur is not None and cur.id not in seen:
        seen.add(cur.id)
        path.append(cur)
        cur = db.get(WbsNode, cur.parent_id) if cur.parent_id is not None else None
    path.reverse()

    parts: list[str] = []
    for step in path:
        ids = [sid for (sid,) in sibling_query(db, step.project_id, step.parent_id).with_entities(WbsNode.id)]
        parts.append(str(ids.index(step.id) + 1))
    return ".".join(parts)


def codes_by_id(nodes: Iterable[NodeRecord]) -> dict[int, str]:
    """Codes for every placeable node of a flat record list, in one top-down pass."""
    kids = children_index(nodes)
    codes: dict[int, str] = {}
    stack = [(n, str(rank)) for rank, n in enumerate(kids.get(None, []), start=1)]
    while stack:
        node, code = stack.pop()
        codes[node.id] = code
        stack.extend((c, f"{code}.{rank}") for rank, c in enumerate(kids.get(node.id, []), start=1))
    return codes


def code_for(nodes: Iterable[NodeRecord], node_id: int) -> str | None:
    """Same result as generate_code, computed over an in-memory record list."""
    return codes_by_id(nodes).get(node_id)


def _load_project(db: Session, project_id: int) -> list[WbsNode]:
    db.flush()
    return db.query(WbsNode).filter(WbsNode.project_id == project_id).all()


def _refresh_subtrees(project_nodes: list[WbsNode], start_ids: Iterable[int]) -> list[int]:
    by_id = {n.id: n for n in project_nodes}
    codes = codes_by_id(project_nodes)
    touched: list[int] = []
    for start in start_ids:
        for nid in [start, *descendant_ids(project_nodes, start)]:
            n = by_id[nid]
            parent = by_id.get(n.parent_id) if n.parent_id is not None else None
            n.level = parent.level + 1 if parent is not None else 0
            n.wbs_code = codes.get(nid)
            touched.append(nid)
    return touched


def propagate_codes(db: Session, node_id: int) -> list[int]:
    """Refresh level and wbs_code for ``node_id`` and its whole subtree."""
    node = db.get(WbsNode, node_id)
    if node is None:
        return []
    touched = _refresh_subtrees(_load_project(db, node.project_id), [node_id])
    db.flush()
    return touched


def propagate_group(db: Session, project_id: int, parent_id: int | None) -> list[int]:
    project_nodes = _load_project(db, project_id)
    group = children_index(project_nodes).get(parent_id, [])
    touched = _refresh_subtrees(project_nodes, [n.id for n in group])
    db.flush()
    return touched
