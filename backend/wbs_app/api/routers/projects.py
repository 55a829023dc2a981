from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from wbs_app.core.deps import get_db, project_or_404
from wbs_app.schemas.project import ProjectCreate, ProjectOut, ProjectUpdate
from wbs_app.crud.projects import create_project, delete_project, list_projects, update_project

router = APIRouter()


@router.get("", response_model=list[ProjectOut])
def get_projects(db: Session = Depends(get_db)):
    return list_projects(db)


@router.post("", response_model=ProjectOut, status_code=201)
def post_project(data: ProjectCreate, db: Session = Depends(get_db)):
    try:
        return create_project(db, data)
    except ValueError as e:
        if str(e) == "project_code_exists":
            raise HTTPException(status_code=409, detail="Project code already exists")
        raise


@router.get("/{project_id}", response_model=ProjectOut)
def get_project_by_id(project_id: int, db: Session = Depends(get_db)):
    return project_or_404(db, project_id)


@router.put("/{project_id}", response_model=ProjectOut)
def put_project(project_id: int, data: ProjectUpdate, db: Session = Depends(get_db)):
    p = project_or_404(db, project_id)
    try:
        return update_project(db, p, data)
    except ValueError as e:
        if str(e) == "project_code_exists":
            raise HTTPException(status_code=409, detail="Project code already exists")
        raise


@router.delete("/{project_id}")
def remove_project(project_id: int, db: Session = Depends(get_db)):
    p = project_or_404(db, project_id)
    deleted = delete_project(db, p)
    return {"status": "ok", "deleted_nodes": deleted}
