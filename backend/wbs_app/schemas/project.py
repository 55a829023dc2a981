import datetime as dt
from typing import Annotated
from pydantic import AfterValidator, BaseModel, ConfigDict

from wbs_app.db.models.project import ProjectStatus


def _required_text(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be empty")
    return v


RequiredText = Annotated[str, AfterValidator(_required_text)]


class ProjectCreate(BaseModel):
    code: RequiredText
    name: RequiredText
    description: str | None = None
    status: ProjectStatus = ProjectStatus.active


class ProjectUpdate(BaseModel):
    code: RequiredText | None = None
    name: RequiredText | None = None
    description: str | None = None
    status: ProjectStatus | None = None


class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    description: str | None = None
    status: str
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
