from fastapi import APIRouter

from bugflow.api.routers import auth, bugs, dashboard, invitations, projects, teams, todos, users
from bugflow.core.config import settings

api_router = APIRouter()


@api_router.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    if not settings.database_configured:
        return {"status": "degraded", "database": "not_configured"}
    return {"status": "ok"}


api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(projects.router)
api_router.include_router(teams.router)
api_router.include_router(invitations.router)
api_router.include_router(bugs.router)
api_router.include_router(todos.router)
api_router.include_router(dashboard.router)
