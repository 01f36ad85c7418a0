from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from bugflow.api import deps
from bugflow.core.context import RequestContext
from bugflow.schemas.dashboard import DashboardResponse
from bugflow.services.dashboard import compute_dashboard
from bugflow.utils.scope import parse_project_scope

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    project_id: str | None = Query(default=None, alias="projectId"),
    ctx: RequestContext = Depends(deps.get_bearer_context),
) -> DashboardResponse:
    """
    Métricas, série de 14 dias e tabela de bugs/todos do usuário.

    Sem ``projectId`` (ou com "null"/"undefined"/"all") agrega todos os projetos
    acessíveis. Exige ``Authorization: Bearer``.
    """
    return await compute_dashboard(ctx, parse_project_scope(project_id))
