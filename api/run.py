"""CLI de desenvolvimento do Bugflow: migrações e servidor local.

Exemplos::

    python run.py migrate              # aplica até a head
    python run.py downgrade -1         # desfaz a última revisão
    python run.py current              # mostra a revisão aplicada
    python run.py serve --migrate      # migra e sobe o uvicorn

Host, porta e recarregamento vêm de ``Settings`` (``BUGFLOW_SERVER_HOST``,
``BUGFLOW_SERVER_PORT``, ``BUGFLOW_DEBUG``) e podem ser sobrescritos por flag.
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import Sequence

from alembic import command
from alembic.config import Config

from bugflow.core.config import Settings, get_settings

BASE_DIR = pathlib.Path(__file__).resolve().parent

logger = logging.getLogger("bugflow.run")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="run.py", description="Migrações e servidor local do Bugflow.")
    subcommands = parser.add_subparsers(dest="command", required=True)

    migrate = subcommands.add_parser("migrate", help="Aplica migrações Alembic.")
    migrate.add_argument("revision", nargs="?", default="head")

    downgrade = subcommands.add_parser("downgrade", help="Reverte migrações Alembic.")
    downgrade.add_argument("revision")

    subcommands.add_parser("current", help="Mostra a revisão aplicada no banco.")

    serve = subcommands.add_parser("serve", help="Sobe a API com uvicorn.")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--migrate", action="store_true", help="Aplica as migrações antes de subir.")
    reload_group = serve.add_mutually_exclusive_group()
    reload_group.add_argument("--reload", dest="reload", action="store_true", default=None)
    reload_group.add_argument("--no-reload", dest="reload", action="store_false")

    return parser


def alembic_config(settings: Settings) -> Config:
    if not settings.database_configured:
        raise RuntimeError("BUGFLOW_DATABASE_URL não configurada; não há banco para migrar.")

    config = Config(str(BASE_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BASE_DIR / "alembic"))
    config.set_main_option("sqlalchemy.url", str(settings.database_url))
    return config


def serve_options(args: argparse.Namespace, settings: Settings) -> dict[str, object]:
    """Flags da CLI têm precedência; o resto vem das settings."""
    reload = settings.debug if args.reload is None else args.reload
    options: dict[str, object] = {
        "host": args.host or settings.server_host,
        "port": args.port or settings.server_port,
        "reload": reload,
    }
    if reload:
        options["reload_dirs"] = [str(BASE_DIR / "bugflow")]
    return options


def serve(options: dict[str, object]) -> None:
    import uvicorn

    logger.info("Servidor em http://%s:%s (reload=%s)", options["host"], options["port"], options["reload"])
    uvicorn.run("main:app", app_dir=str(BASE_DIR), **options)


def main(argv: Sequence[str] | None = None, settings: Settings | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = settings or get_settings()

    if args.command == "migrate":
        command.upgrade(alembic_config(settings), args.revision)
        logger.info("Banco migrado até %s", args.revision)
    elif args.command == "downgrade":
        command.downgrade(alembic_config(settings), args.revision)
        logger.info("Banco revertido para %s", args.revision)
    elif args.command == "current":
        command.current(alembic_config(settings), verbose=True)
    elif args.command == "serve":
        if args.migrate:
            command.upgrade(alembic_config(settings), "head")
        serve(serve_options(args, settings))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        main()
    except RuntimeError as exc:
        logger.error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)
