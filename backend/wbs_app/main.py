from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from wbs_app.core.config import settings
from wbs_app.core.logging import configure_logging, logger
from wbs_app.api.router import api_router
from wbs_app.db.session import engine
from wbs_app.db.base import Base
from wbs_app.services.seed import seed_demo
from wbs_app.services.tree.errors import NodeNotFound, TreeError


async def tree_error_handler(request: Request, exc: TreeError) -> JSONResponse:
    status = 404 if isinstance(exc, NodeNotFound) else 400
    logger.warning("tree_request_rejected", path=request.url.path, code=exc.code, status=status)
    return JSONResponse(status_code=status, content={"detail": exc.message, "code": exc.code})


def create_app() -> FastAPI:
    configure_logging(settings.ENV, settings.LOG_LEVEL)
    app = FastAPI(title="WBS Tree Service", version="0.1.0")

    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(TreeError, tree_error_handler)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.on_event("startup")
    def _startup():
        # Ensure tables exist for dev-only convenience; in prod rely on alembic
        if settings.ENV == "dev":
            Base.metadata.create_all(bind=engine)
        if settings.SEED_DEMO and settings.ENV == "dev":
            seed_demo()

    app.include_router(api_router)
    logger.info("app_started", env=settings.ENV)
    return app


app = create_app()
