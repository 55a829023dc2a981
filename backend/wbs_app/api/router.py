from fastapi import APIRouter
from wbs_app.api.routers import projects, nodes, tree

api_router = APIRouter()
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(nodes.router, prefix="/nodes", tags=["nodes"])
api_router.include_router(tree.router, prefix="/tree", tags=["tree"])
