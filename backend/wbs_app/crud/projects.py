from sqlalchemy.orm import Session
from wbs_app.db.models.project import Project
from wbs_app.db.models.wbs import WbsNode
from wbs_app.schemas.project import ProjectCreate, ProjectUpdate
from wbs_app.core.logging import get_logger

log = get_logger(__name__)


def list_projects(db: Session):
    return db.query(Project).order_by(Project.id).all()


def get_project(db: Session, project_id: int) -> Project | None:
    return db.query(Project).filter(Project.id == project_id).one_or_none()


def _code_taken(db: Session, code: str, exclude_id: int | None = None) -> bool:
    qry = db.query(Project.id).filter(Project.code == code)
    if exclude_id is not None:
        qry = qry.filter(Project.id != exclude_id)
    return qry.first() is not None


def create_project(db: Session, data: ProjectCreate) -> Project:
    if _code_taken(db, data.code):
        raise ValueError("project_code_exists")
    p = Project(
        code=data.code,
        name=data.name,
        description=data.description,
        status=data.status.value,
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    log.info("project_created", project_id=p.id, code=p.code)
    return p


def update_project(db: Session, p: Project, data: ProjectUpdate) -> Project:
    if data.code is not None:
        if _code_taken(db, data.code, exclude_id=p.id):
            raise ValueError("project_code_exists")
        p.code = data.code
    if data.name is not None:
        p.name = data.name
    if data.description is not None:
        p.description = data.description.strip() or None
    if data.status is not None:
        p.status = data.status.value
    db.commit()
    db.refresh(p)
    return p


def delete_project(db: Session, p: Project) -> int:
    deleted = (
        db.query(WbsNode)
        .filter(WbsNode.project_id == p.id)
        .delete(synchronize_session="fetch")
    )
    db.delete(p)
    db.commit()
    log.info("project_deleted", project_id=p.id, nodes=deleted)
    return deleted
