"""Smoke tests for DealDesk Alembic migrations."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from dealdesk.config import settings
from dealdesk.models import Base


def test_alembic_upgrade_matches_models(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "dealdesk_migrations.db"
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{db_path}")

    cfg = Config(str(settings.alembic_ini_path))
    command.upgrade(cfg, "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        webhook_uniques = inspector.get_unique_constraints("webhook_log")
        contact_indexes = inspector.get_indexes("contact")
    finally:
        engine.dispose()

    assert set(Base.metadata.tables) <= tables
    assert any(u["column_names"] == ["source", "delivery_id"] for u in webhook_uniques)
    assert any(i["column_names"] == ["email"] and i["unique"] for i in contact_indexes)


def test_alembic_downgrade_to_base(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "dealdesk_downgrade.db"
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{db_path}")

    cfg = Config(str(settings.alembic_ini_path))
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()

    assert tables <= {"alembic_version"}
