from sqlalchemy.orm import Session
from wbs_app.db.session import SessionLocal
from wbs_app.core.config import settings
from wbs_app.core.logging import get_logger
from wbs_app.crud.projects import list_projects, create_project
from wbs_app.crud.nodes import create_node
from wbs_app.db.models.wbs import NodeType
from wbs_app.schemas.project import ProjectCreate
from wbs_app.schemas.nodes import NodeCreate

log = get_logger(__name__)

DEMO_TREE = [
    ("Design", NodeType.phase, [("Requirements", NodeType.task, []), ("Design review", NodeType.milestone, [])]),
    ("Build", NodeType.phase, [("Backend", NodeType.task, []), ("Release package", NodeType.deliverable, [])]),
]


def _add_branch(db: Session, project_id: int, parent_id: int | None, branch) -> None:
    for name, node_type, children in branch:
        node = create_node(db, NodeCreate(project_id=project_id, parent_id=parent_id, name=name, type=node_type))
        _add_branch(db, project_id, node.id, children)


def seed_demo(db: Session | None = None):
    own = db is None
    db = db or SessionLocal()
    try:
        # Create default project with a small tree if none
        if not list_projects(db):
            p = create_project(
                db,
                ProjectCreate(code=settings.DEMO_PROJECT_CODE, name="Demo Project", description="Seeded demo project"),
            )
            _add_branch(db, p.id, None, DEMO_TREE)
            log.info("demo_seeded", project_id=p.id)
    finally:
        if own:
            db.close()
