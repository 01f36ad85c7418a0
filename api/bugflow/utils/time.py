"""Helpers de data/hora. Toda a aplicação trabalha em UTC."""

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Normaliza um datetime para UTC com timezone.

    Alguns drivers (SQLite) devolvem datetimes sem tzinfo mesmo em colunas
    ``DateTime(timezone=True)``; nesses casos o valor já está em UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_day(value: datetime) -> date:
    return as_utc(value).date()
