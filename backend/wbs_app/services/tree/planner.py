"""Move planning over a flat node list.

Everything here is a pure computation: callers read the current node set,
ask for a plan, and only then start writing. A rejected move therefore never
leaves a half-reindexed sibling group behind.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol

from wbs_app.services.tree.errors import IllegalMove, NodeNotFound


class Relation(str, Enum):
    above = "above"
    below = "below"
    inside = "inside"


class NodeRecord(Protocol):
    id: int
    project_id: int
    parent_id: int | None
    order_idx: int
    level: int


@dataclass(frozen=True)
class MovePlan:
    new_parent_id: int | None
    new_level: int
    insert_rank: int


def children_index(nodes: Iterable[NodeRecord]) -> dict[int | None, list[NodeRecord]]:
    idx: dict[int | None, list[NodeRecord]] = {}
    for n in nodes:
        idx.setdefault(n.parent_id, []).append(n)
    for group in idx.values():
        group.sort(key=lambda n: (n.order_idx, n.id))
    return idx


def descendant_ids(nodes: Iterable[NodeRecord], node_id: int) -> list[int]:
    """Ids of every node below ``node_id``, parents before children."""
    kids = children_index(nodes)
    out: list[int] = []
    stack = [c.id for c in reversed(kids.get(node_id, []))]
    while stack:
        nid = stack.pop()
        out.append(nid)
        stack.extend(c.id for c in reversed(kids.get(nid, [])))
    return out


def plan_move(nodes: Iterable[NodeRecord], node_id: int, target_id: int, relation: Relation | str) -> MovePlan:
    nodes = list(nodes)
    by_id = {n.id: n for n in nodes}
    relation = Relation(relation)

    node = by_id.get(node_id)
    if node is None:
        raise NodeNotFound(node_id)
    target = by_id.get(target_id)
    if target is None:
        raise NodeNotFound(target_id, what="target")

    if node.project_id != target.project_id:
        raise IllegalMove("cross_project_move", "Node and target belong to different projects")
    if node_id == target_id:
        raise IllegalMove("move_onto_self", "Cannot move node onto itself")
    if relation is Relation.inside and node.parent_id == target_id:
        raise IllegalMove("already_child", "Node is already a child of the target node")
    # above/below a descendant would reparent the node under its own subtree too
    if target_id in descendant_ids(nodes, node_id):
        raise IllegalMove("move_into_subtree", "Cannot move node into its own subtree")

    if relation is Relation.above:
        plan_parent, plan_level, rank = target.parent_id, target.level, target.order_idx
    elif relation is Relation.below:
        plan_parent, plan_level, rank = target.parent_id, target.level, target.order_idx + 1
    else:
        plan_parent, plan_level = target_id, target.level + 1
        rank = sum(1 for n in nodes if n.parent_id == target_id)

    # the node leaves a gap in front of the insertion point
    if node.parent_id == plan_parent and node.order_idx < rank:
        rank -= 1

    return MovePlan(new_parent_id=plan_parent, new_level=plan_level, insert_rank=rank)
