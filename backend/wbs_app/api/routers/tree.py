from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.orm import Session

from wbs_app.core.deps import get_db, project_or_404
from wbs_app.crud.nodes import list_nodes
from wbs_app.db.models.wbs import NodeType
from wbs_app.schemas.nodes import NodeOut
from wbs_app.schemas.tree import ExportOut, ProjectRootOut, SearchHitOut
from wbs_app.services.exports.exporter import default_export_path, export_tree_xlsx
from wbs_app.services.tree.builder import (
    build_tree,
    export_snapshot,
    filter_by_type,
    flatten,
    path_to_root,
    project_root,
    search,
)

router = APIRouter()


@router.get("/{project_id}/nodes", response_model=list[NodeOut])
def get_flat_nodes(project_id: int, db: Session = Depends(get_db)):
    project_or_404(db, project_id)
    return list_nodes(db, project_id)


@router.get("/{project_id}", response_model=ProjectRootOut)
def get_tree(project_id: int, db: Session = Depends(get_db)):
    p = project_or_404(db, project_id)
    return project_root(p, build_tree(list_nodes(db, project_id)))


@router.get("/{project_id}/search", response_model=list[SearchHitOut])
def search_tree(
    project_id: int,
    q: str | None = Query(None),
    node_type: NodeType | None = Query(None, alias="type"),
    db: Session = Depends(get_db),
):
    project_or_404(db, project_id)
    roots = build_tree(list_nodes(db, project_id))
    hits = search(roots, q) if q and q.strip() else flatten(roots)
    if node_type is not None:
        wanted = {n.id for n in filter_by_type(roots, node_type)}
        hits = [n for n in hits if n.id in wanted]
    return [
        SearchHitOut(node=NodeOut.model_validate(n), path=[p.id for p in path_to_root(roots, n.id)])
        for n in hits
    ]


@router.get("/{project_id}/export")
def export_tree_json(project_id: int, db: Session = Depends(get_db)):
    p = project_or_404(db, project_id)
    doc = ExportOut.model_validate(export_snapshot(build_tree(list_nodes(db, project_id))))
    return JSONResponse(
        content=doc.model_dump(mode="json"),
        headers={"Content-Disposition": f'attachment; filename="{p.code}_export.json"'},
    )


@router.get("/{project_id}/export.xlsx")
def export_tree_sheet(project_id: int, db: Session = Depends(get_db)):
    p = project_or_404(db, project_id)
    roots = build_tree(list_nodes(db, project_id))
    out = export_tree_xlsx(roots, default_export_path(f"wbs_{p.code}", "xlsx"))
    return FileResponse(
        out,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=out.name,
    )
