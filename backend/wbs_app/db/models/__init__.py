# import all models for Alembic
from wbs_app.db.models.project import Project, ProjectStatus
from wbs_app.db.models.wbs import WbsNode, NodeType
