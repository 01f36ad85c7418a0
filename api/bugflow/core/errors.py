"""
Taxonomia de erros da API e handlers que convertem tudo em ``{"error": "..."}``.

Os services levantam as subclasses de ``HTTPException`` abaixo; nenhuma exceção
chega ao transporte sem passar por um destes handlers.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("bugflow.errors")

DATABASE_NOT_CONFIGURED = "Database not configured"
INTERNAL_ERROR = "Internal server error"


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Não autenticado") -> None:
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail=detail)


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Permissão insuficiente") -> None:
        super().__init__(status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Registro não encontrado") -> None:
        super().__init__(status.HTTP_404_NOT_FOUND, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status.HTTP_409_CONFLICT, detail=detail)


class Gone(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status.HTTP_410_GONE, detail=detail)


class ValidationFailed(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, detail=detail)


class BackendUnavailable(HTTPException):
    def __init__(self, detail: str = DATABASE_NOT_CONFIGURED) -> None:
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def describe_database_error(exc: SQLAlchemyError) -> str:
    """Traduz erros conhecidos do banco (tabela ausente, permissão) em mensagens acionáveis."""
    code = None
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    message = str(exc).lower()

    if code == "42P01" or "no such table" in message or "does not exist" in message:
        return "Tabela não encontrada. Execute as migrações do banco (alembic upgrade head)."
    if code == "42501" or "permission denied" in message:
        return "Permissão negada pelo banco. Verifique as permissões do usuário configurado."
    return "Erro ao acessar o banco de dados"


async def http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Requisição inválida"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


async def integrity_error_handler(_: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error: %s", exc.orig)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": "Registro em conflito com dados existentes"},
    )


async def database_error_handler(_: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": describe_database_error(exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": INTERNAL_ERROR},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
