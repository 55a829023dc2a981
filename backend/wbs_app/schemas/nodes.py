import datetime as dt
from pydantic import BaseModel, ConfigDict, Field, field_validator

from wbs_app.db.models.wbs import NodeType
from wbs_app.schemas.project import RequiredText
from wbs_app.services.tree.planner import Relation


class NodeCreate(BaseModel):
    project_id: int = Field(gt=0)
    parent_id: int | None = Field(default=None, gt=0)
    name: RequiredText
    description: str | None = None
    type: NodeType = NodeType.task

    @field_validator("description")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        return (v or "").strip() or None


class NodeUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: RequiredText | None = None
    description: str | None = None
    type: NodeType | None = None
    parent_id: int | None = Field(default=None, gt=0)
    order_idx: int | None = Field(default=None, ge=0)


class NodeMoveIn(BaseModel):
    node_id: int = Field(gt=0)
    target_id: int = Field(gt=0)
    relation: Relation


class NodeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    parent_id: int | None = None
    name: str
    description: str | None = None
    order_idx: int
    level: int
    wbs_code: str | None = None
    type: NodeType
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class NodeMoveOut(BaseModel):
    success: bool = True
    moved_node: NodeOut


class NodeDeleteOut(BaseModel):
    status: str = "ok"
    deleted: int
