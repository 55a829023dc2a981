from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from wbs_app.core.deps import get_db
from wbs_app.crud.nodes import create_node, delete_node, get_node, move_node, update_node
from wbs_app.schemas.nodes import NodeCreate, NodeDeleteOut, NodeMoveIn, NodeMoveOut, NodeOut, NodeUpdate

router = APIRouter()


def _node_or_404(db: Session, node_id: int):
    node = get_node(db, node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return node


@router.post("", response_model=NodeOut, status_code=201)
def post_node(data: NodeCreate, db: Session = Depends(get_db)):
    return create_node(db, data)


@router.post("/move", response_model=NodeMoveOut)
def post_move(data: NodeMoveIn, db: Session = Depends(get_db)):
    node = move_node(db, data.node_id, data.target_id, data.relation)
    return NodeMoveOut(moved_node=NodeOut.model_validate(node))


@router.get("/{node_id}", response_model=NodeOut)
def get_node_by_id(node_id: int, db: Session = Depends(get_db)):
    return _node_or_404(db, node_id)


@router.put("/{node_id}", response_model=NodeOut)
def put_node(node_id: int, data: NodeUpdate, db: Session = Depends(get_db)):
    return update_node(db, _node_or_404(db, node_id), data)


@router.delete("/{node_id}", response_model=NodeDeleteOut)
def remove_node(node_id: int, db: Session = Depends(get_db)):
    return NodeDeleteOut(deleted=delete_node(db, _node_or_404(db, node_id)))
