from sqlalchemy.orm import Session

from wbs_app.db.models.wbs import WbsNode
from wbs_app.db.models._mixins import utcnow


def sibling_query(db: Session, project_id: int, parent_id: int | None):
    qry = db.query(WbsNode).filter(WbsNode.project_id == project_id)
    if parent_id is None:
        qry = qry.filter(WbsNode.parent_id.is_(None))
    else:
        qry = qry.filter(WbsNode.parent_id == parent_id)
    return qry.order_by(WbsNode.order_idx, WbsNode.id)


def shift_siblings(
    db: Session,
    project_id: int,
    parent_id: int | None,
    from_rank: int,
    delta: int,
    exclude_id: int | None = None,
) -> None:
    for sib in sibling_query(db, project_id, parent_id).all():
        if sib.id == exclude_id or sib.order_idx < from_rank:
            continue
        sib.order_idx += delta
        sib.touch()
    db.flush()


def reindex_siblings(db: Session, project_id: int, parent_id: int | None) -> list[WbsNode]:
    """Rewrite a sibling group's order_idx to 0..n-1, keeping current order.

    Every member is touched, not only the ones whose rank changed.
    """
    siblings = sibling_query(db, project_id, parent_id).all()
    now = utcnow()
    for i, sib in enumerate(siblings):
        sib.order_idx = i
        sib.updated_at = now
    db.flush()
    return siblings
