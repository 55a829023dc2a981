from enum import Enum
from sqlalchemy import String, Text, ForeignKey, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wbs_app.db.base import Base
from wbs_app.db.models._mixins import TimestampMixin


class NodeType(str, Enum):
    task = "task"
    milestone = "milestone"
    deliverable = "deliverable"
    phase = "phase"


class WbsNode(Base, TimestampMixin):
    __tablename__ = "wbs_node"
    __table_args__ = (Index("ix_wbs_node_project_parent_order", "project_id", "parent_id", "order_idx"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("project.id", ondelete="CASCADE"), index=True)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("wbs_node.id", ondelete="CASCADE"), nullable=True, index=True
    )

    name: Mapped[str] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    order_idx: Mapped[int] = mapped_column(Integer, default=0)
    level: Mapped[int] = mapped_column(Integer, default=0)
    wbs_code: Mapped[str | None] = mapped_column(String(50), nullable=True)  # e.g. "1.2.3"

    type: Mapped[str] = mapped_column(String(20), default=NodeType.task.value)

    project = relationship("Project", back_populates="wbs_nodes")

    def __repr__(self) -> str:
        return f"<WbsNode(id={self.id}, parent_id={self.parent_id}, order_idx={self.order_idx}, code={self.wbs_code})>"
