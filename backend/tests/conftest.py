import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("SEED_DEMO", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import wbs_app.db.models  # noqa: F401
from wbs_app.core.deps import get_db
from wbs_app.crud.nodes import create_node, list_nodes
from wbs_app.crud.projects import create_project
from wbs_app.db.base import Base
from wbs_app.main import create_app
from wbs_app.schemas.nodes import NodeCreate
from wbs_app.schemas.project import ProjectCreate


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=True, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def app(session_factory):
    application = create_app()

    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    application.dependency_overrides[get_db] = _get_db
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def project(db):
    return create_project(db, ProjectCreate(code="PRJ-T", name="Test project"))


@pytest.fixture
def add(db, project):
    def _add(name, parent_id=None, type="task", project_id=None):
        return create_node(
            db,
            NodeCreate(project_id=project_id or project.id, parent_id=parent_id, name=name, type=type),
        )
    return _add


@pytest.fixture
def rows(db, project):
    def _rows(project_id=None):
        db.expire_all()
        return sorted(
            (n.id, n.parent_id, n.order_idx, n.level, n.wbs_code) for n in list_nodes(db, project_id or project.id)
        )
    return _rows
