import os
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def test_get_engine_kwargs_sqlite_has_check_same_thread(monkeypatch):
    # Import lazily so monkeypatch can affect env usage deterministically.
    from blockplanner.database import database as db

    kwargs = db.get_engine_kwargs("sqlite:///./blockplanner.db")
    assert kwargs["connect_args"]["check_same_thread"] is False
    assert "pool_size" not in kwargs
    assert kwargs["pool_pre_ping"] is True


def test_get_engine_kwargs_postgres_reads_pool_env(monkeypatch):
    from blockplanner.database import database as db

    monkeypatch.setenv("DB_POOL_SIZE", "3")
    monkeypatch.setenv("DB_MAX_OVERFLOW", "7")
    monkeypatch.setenv("DB_POOL_TIMEOUT_SEC", "12")

    kwargs = db.get_engine_kwargs("postgresql+psycopg://u:p@localhost:5432/db")
    assert "connect_args" not in kwargs
    assert kwargs["pool_size"] == 3
    assert kwargs["max_overflow"] == 7
    assert kwargs["pool_timeout"] == 12


def test_sqlite_url_detection():
    from blockplanner.database import database as db

    assert db._is_sqlite_url("sqlite:///./blockplanner.db") is True
    assert db._is_sqlite_url("postgresql+psycopg://u:p@localhost/db") is False


def _script_directory():
    from alembic.config import Config
    from alembic.script import ScriptDirectory

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    return ScriptDirectory.from_config(cfg)


def test_migration_history_is_a_single_baseline():
    script = _script_directory()
    assert [rev.revision for rev in script.walk_revisions()] == ["4a7e2c91d0b3"]


def test_baseline_migration_creates_preferences_timezone(tmp_path):
    """The baseline alone yields the full schema, timezone column included."""
    from alembic.migration import MigrationContext
    from alembic.operations import Operations
    from sqlalchemy import create_engine, inspect, text
    from blockplanner.database.migrate_runner import missing_requirements

    baseline = _script_directory().get_revision("4a7e2c91d0b3")
    engine = create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            baseline.module.upgrade()

    assert missing_requirements(engine) == []
    assert "timezone" in {c["name"] for c in inspect(engine).get_columns("user_preferences")}
    with engine.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO users (id, email, created_at, updated_at) "
                "VALUES ('u1', 'u1@example.com', '2026-03-02', '2026-03-02')"
            )
        )
        conn.execute(
            text(
                "INSERT INTO user_preferences "
                "(user_id, notifications_enabled, notification_sound_enabled, created_at, updated_at) "
                "VALUES ('u1', 1, 1, '2026-03-02', '2026-03-02')"
            )
        )
        assert conn.execute(text("SELECT timezone FROM user_preferences")).scalar() == "UTC"
    engine.dispose()


def test_missing_requirements_reports_absent_schema(tmp_path):
    from sqlalchemy import create_engine
    from blockplanner.database.migrate_runner import missing_requirements

    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    missing = missing_requirements(engine)
    assert "missing table: notification_queue" in missing
    assert "missing column: user_preferences.timezone" in missing
    engine.dispose()


def test_missing_requirements_empty_for_current_schema(engine):
    from blockplanner.database.migrate_runner import missing_requirements

    assert missing_requirements(engine) == []


def test_default_database_url_is_local_sqlite():
    from blockplanner.database import database as db

    if "DATABASE_URL" not in os.environ:
        assert db.DATABASE_URL == "sqlite:///./blockplanner.db"
