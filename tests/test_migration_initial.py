"""
Tests for migration 000_initial_schema.

Verifies that the models produce the expected tables after create_all,
and that the migration script creates every model column.
"""

import pathlib

import pytest
import pytest_asyncio
from sqlalchemy import inspect as sa_inspect

from marketplace.models import Base


@pytest_asyncio.fixture
async def inspector(db_engine):
    """Return a dict of {table_name: [column_names]}."""
    async with db_engine.connect() as conn:
        def _inspect(sync_conn):
            insp = sa_inspect(sync_conn)
            tables = {}
            for table in insp.get_table_names():
                tables[table] = [c["name"] for c in insp.get_columns(table)]
            return tables
        return await conn.run_sync(_inspect)


# ── create_all ──────────────────────────────────────────────

class TestModelTables:
    def test_tables(self, inspector):
        assert set(inspector) == {
            "users",
            "services",
            "commissions",
            "commission_negotiation_history",
            "audit_logs",
        }

    def test_commission_version_column(self, inspector):
        assert "version" in inspector["commissions"]

    def test_service_projection_columns(self, inspector):
        for column in (
            "commission_status",
            "offered_commission_percentage",
            "final_commission_percentage",
            "commission_id",
        ):
            assert column in inspector["services"]

    def test_history_columns(self, inspector):
        assert set(inspector["commission_negotiation_history"]) == {
            "id",
            "commission_id",
            "action",
            "by_user_id",
            "by_role",
            "percentage",
            "note",
            "created_at",
        }


# ── Migration script structural checks ─────────────────────

class TestMigrationScript:
    """Validate migration script structure against the models (source-level checks)."""

    @pytest.fixture
    def source(self):
        fpath = pathlib.Path(__file__).resolve().parent.parent / "alembic" / "versions" / "000_initial_schema.py"
        return fpath.read_text(encoding="utf-8")

    @pytest.fixture
    def upgrade_body(self, source):
        return source[source.index("def upgrade()"):source.index("def downgrade()")]

    def test_revision_id(self, source):
        assert 'revision: str = "000_initial_schema"' in source
        assert "down_revision: Union[str, None] = None" in source

    def test_every_table_created_and_dropped(self, source, upgrade_body):
        downgrade_body = source[source.index("def downgrade()"):]
        for table in Base.metadata.tables:
            assert f'"{table}"' in upgrade_body, f"Table '{table}' not found in upgrade()"
            assert f'op.drop_table("{table}")' in downgrade_body

    def test_every_model_column_in_upgrade(self, upgrade_body):
        for table in Base.metadata.tables.values():
            for column in table.columns:
                assert f'"{column.name}"' in upgrade_body, (
                    f"Column '{table.name}.{column.name}' not found in upgrade()"
                )

    def test_enum_values_match_models(self, upgrade_body):
        from marketplace.models import (
            AuditAction,
            CommissionStatus,
            NegotiationAction,
            ServiceCommissionStatus,
            UserRole,
        )

        for enum in (AuditAction, CommissionStatus, NegotiationAction, ServiceCommissionStatus, UserRole):
            for member in enum:
                assert f'"{member.value}"' in upgrade_body, f"{enum.__name__}.{member.name} missing"
