from contextlib import contextmanager

from sqlalchemy import func
from sqlalchemy.orm import Session

from wbs_app.core.logging import get_logger
from wbs_app.db.models.project import Project
from wbs_app.db.models.wbs import WbsNode
from wbs_app.schemas.nodes import NodeCreate, NodeUpdate
from wbs_app.services.tree.codes import generate_code, propagate_group
from wbs_app.services.tree.errors import IllegalMove, NodeNotFound, TreeError
from wbs_app.services.tree.planner import Relation, descendant_ids, plan_move
from wbs_app.services.tree.reindex import reindex_siblings, shift_siblings, sibling_query

log = get_logger(__name__)


@contextmanager
def _atomic(db: Session):
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def list_nodes(db: Session, project_id: int) -> list[WbsNode]:
    return (
        db.query(WbsNode)
        .filter(WbsNode.project_id == project_id)
        .order_by(WbsNode.order_idx, WbsNode.id)
        .all()
    )


def get_node(db: Session, node_id: int) -> WbsNode | None:
    return db.get(WbsNode, node_id)


def _require_node(db: Session, node_id: int, what: str = "node") -> WbsNode:
    node = get_node(db, node_id)
    if node is None:
        raise NodeNotFound(node_id, what=what)
    return node


def _parent_for(db: Session, project_id: int, parent_id: int | None) -> WbsNode | None:
    if parent_id is None:
        return None
    parent = _require_node(db, parent_id, what="parent")
    if parent.project_id != project_id:
        raise TreeError("parent_not_in_project", "Parent node belongs to another project")
    return parent


def create_node(db: Session, data: NodeCreate) -> WbsNode:
    if db.get(Project, data.project_id) is None:
        raise NodeNotFound(data.project_id, what="project")

    with _atomic(db):
        parent = _parent_for(db, data.project_id, data.parent_id)
        last = (
            sibling_query(db, data.project_id, data.parent_id)
            .order_by(None)
            .with_entities(func.max(WbsNode.order_idx))
            .scalar()
        )
        node = WbsNode(
            project_id=data.project_id,
            parent_id=data.parent_id,
            name=data.name,
            description=data.description,
            type=data.type.value,
            order_idx=0 if last is None else last + 1,
            level=parent.level + 1 if parent is not None else 0,
        )
        db.add(node)
        db.flush()
        reindex_siblings(db, data.project_id, data.parent_id)
        node.wbs_code = generate_code(db, node.id)
    db.refresh(node)
    log.info("node_created", node_id=node.id, project_id=node.project_id, parent_id=node.parent_id, code=node.wbs_code)
    return node


def _relocate(db: Session, node: WbsNode, new_parent_id: int | None, new_level: int, insert_rank: int) -> None:
    project_id = node.project_id
    old_parent_id = node.parent_id

    shift_siblings(db, project_id, old_parent_id, node.order_idx + 1, -1, exclude_id=node.id)
    shift_siblings(db, project_id, new_parent_id, insert_rank, +1, exclude_id=node.id)

    node.parent_id = new_parent_id
    node.order_idx = insert_rank
    node.level = new_level
    node.touch()
    db.flush()

    if old_parent_id != new_parent_id:
        reindex_siblings(db, project_id, old_parent_id)
    reindex_siblings(db, project_id, new_parent_id)

    if old_parent_id != new_parent_id:
        propagate_group(db, project_id, old_parent_id)
    propagate_group(db, project_id, new_parent_id)


def update_node(db: Session, node: WbsNode, data: NodeUpdate) -> WbsNode:
    fields = data.model_fields_set

    with _atomic(db):
        if data.name is not None:
            node.name = data.name
        if "description" in fields:
            node.description = (data.description or "").strip() or None
        if data.type is not None:
            node.type = data.type.value

        new_parent_id = data.parent_id if "parent_id" in fields else node.parent_id
        moving = new_parent_id != node.parent_id or (
            data.order_idx is not None and data.order_idx != node.order_idx
        )
        if moving:
            parent = _parent_for(db, node.project_id, new_parent_id)
            if new_parent_id == node.id:
                raise IllegalMove("move_onto_self", "Cannot move node onto itself")
            if new_parent_id is not None and new_parent_id in descendant_ids(list_nodes(db, node.project_id), node.id):
                raise IllegalMove("move_into_subtree", "Cannot move node into its own subtree")

            others = sibling_query(db, node.project_id, new_parent_id).filter(WbsNode.id != node.id).count()
            rank = others if data.order_idx is None else min(data.order_idx, others)
            _relocate(db, node, new_parent_id, parent.level + 1 if parent is not None else 0, rank)

        node.touch()
    db.refresh(node)
    log.info("node_updated", node_id=node.id, fields=sorted(fields), relocated=moving)
    return node


def move_node(db: Session, node_id: int, target_id: int, relation: Relation | str) -> WbsNode:
    node = _require_node(db, node_id)
    nodes = list_nodes(db, node.project_id)
    target = get_node(db, target_id)
    if target is not None and target.project_id != node.project_id:
        nodes.append(target)

    plan = plan_move(nodes, node_id, target_id, relation)

    with _atomic(db):
        _relocate(db, node, plan.new_parent_id, plan.new_level, plan.insert_rank)
    db.refresh(node)
    log.info(
        "node_moved",
        node_id=node.id,
        target_id=target_id,
        relation=Relation(relation).value,
        parent_id=node.parent_id,
        order_idx=node.order_idx,
        code=node.wbs_code,
    )
    return node


def delete_node(db: Session, node: WbsNode) -> int:
    """Delete ``node`` with its entire subtree and close the gap it leaves."""
    project_id, parent_id = node.project_id, node.parent_id

    with _atomic(db):
        ids = [node.id, *descendant_ids(list_nodes(db, project_id), node.id)]
        db.query(WbsNode).filter(WbsNode.id.in_(ids)).delete(synchronize_session="fetch")
        db.flush()
        reindex_siblings(db, project_id, parent_id)
        propagate_group(db, project_id, parent_id)
    log.info("node_deleted", node_id=ids[0], project_id=project_id, deleted=len(ids))
    return len(ids)
