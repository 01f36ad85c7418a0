import pytest

import run
from bugflow.core.config import Settings


def _settings(**overrides) -> Settings:
    values = {"session_secret": "test-secret-value-123456", "database_url": "sqlite+aiosqlite:///./dev.db"}
    values.update(overrides)
    return Settings(**values)


def test_migrate_without_database_fails(monkeypatch):
    monkeypatch.setattr(run.command, "upgrade", lambda *args: pytest.fail("não deveria migrar"))

    with pytest.raises(RuntimeError, match="BUGFLOW_DATABASE_URL"):
        run.main(["migrate"], settings=_settings(database_url=None))


def test_migrate_points_alembic_at_configured_database(monkeypatch):
    calls = []
    monkeypatch.setattr(run.command, "upgrade", lambda config, revision: calls.append((config, revision)))

    run.main(["migrate"], settings=_settings())

    [(config, revision)] = calls
    assert revision == "head"
    assert config.get_main_option("sqlalchemy.url") == "sqlite+aiosqlite:///./dev.db"
    assert config.get_main_option("script_location").endswith("alembic")


def test_serve_defaults_come_from_settings(monkeypatch):
    served = []
    monkeypatch.setattr(run, "serve", served.append)

    run.main(["serve"], settings=_settings(server_host="0.0.0.0", server_port=9000, debug=False))

    assert served == [{"host": "0.0.0.0", "port": 9000, "reload": False}]


def test_serve_flags_override_settings_and_can_migrate(monkeypatch):
    served = []
    upgrades = []
    monkeypatch.setattr(run, "serve", served.append)
    monkeypatch.setattr(run.command, "upgrade", lambda config, revision: upgrades.append(revision))

    run.main(["serve", "--port", "8081", "--no-reload", "--migrate"], settings=_settings(debug=True))

    assert upgrades == ["head"]
    assert served[0]["port"] == 8081
    assert served[0]["reload"] is False
    assert "reload_dirs" not in served[0]
