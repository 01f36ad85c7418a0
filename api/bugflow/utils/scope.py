"""
Escopo de projeto usado por dashboard, QA e resolução de papéis.

O parâmetro ``projectId`` chega como string na query; ele é convertido uma única
vez na borda HTTP em ``SingleProject`` ou ``AllProjects`` e nada abaixo do router
compara strings como "null" ou "undefined".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from bugflow.core.errors import ValidationFailed

ALL_PROJECTS_TOKENS = frozenset({"", "null", "undefined", "all"})


@dataclass(frozen=True)
class SingleProject:
    project_id: int


@dataclass(frozen=True)
class AllProjects:
    pass


ALL_PROJECTS = AllProjects()

ProjectScope = Union[SingleProject, AllProjects]


def parse_project_scope(raw: str | None) -> ProjectScope:
    """
    Converte o valor bruto de ``projectId`` em um ``ProjectScope``.

    Examples:
        >>> parse_project_scope(None)
        AllProjects()

        >>> parse_project_scope("undefined")
        AllProjects()

        >>> parse_project_scope("42")
        SingleProject(project_id=42)
    """
    if raw is None:
        return ALL_PROJECTS

    value = raw.strip()
    if value.lower() in ALL_PROJECTS_TOKENS:
        return ALL_PROJECTS

    try:
        project_id = int(value)
    except ValueError:
        raise ValidationFailed(f"projectId inválido: {raw!r}") from None
    if project_id <= 0:
        raise ValidationFailed(f"projectId inválido: {raw!r}")
    return SingleProject(project_id)
