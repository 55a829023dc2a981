from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from wbs_app.schemas.nodes import NodeOut


class TreeNodeOut(NodeOut):
    children: list[TreeNodeOut] = Field(default_factory=list)


class ProjectRootOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_id: int
    name: str
    level: int = 0
    children: list[TreeNodeOut] = Field(default_factory=list)


class SearchHitOut(BaseModel):
    node: NodeOut
    path: list[int]


class ExportOut(BaseModel):
    version: str
    exportDate: str
    nodes: list[TreeNodeOut]
