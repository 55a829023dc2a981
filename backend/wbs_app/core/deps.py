from fastapi import HTTPException
from sqlalchemy.orm import Session

from wbs_app.db.session import SessionLocal
from wbs_app.db.models.project import Project
from wbs_app.crud.projects import get_project


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def project_or_404(db: Session, project_id: int) -> Project:
    p = get_project(db, project_id)
    if not p:
        raise HTTPException(status_code=404, detail="Project not found")
    return p
