from enum import Enum
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wbs_app.db.base import Base
from wbs_app.db.models._mixins import TimestampMixin


class ProjectStatus(str, Enum):
    active = "active"
    planned = "planned"
    on_hold = "on-hold"
    completed = "completed"


class Project(Base, TimestampMixin):
    __tablename__ = "project"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(150))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=ProjectStatus.active.value, server_default=ProjectStatus.active.value
    )

    wbs_nodes = relationship(
        "WbsNode",
        back_populates="project",
        passive_deletes="all",
    )
