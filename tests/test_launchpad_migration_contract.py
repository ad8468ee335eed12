from __future__ import annotations

from pathlib import Path


def test_core_migration_declares_tables_and_indexes() -> None:
    migration_path = Path("migrations/versions/20261019_0001_launchpad_core.py")
    source = migration_path.read_text(encoding="utf-8")

    assert "\"products\"," in source
    assert "\"automation_runs\"," in source
    assert "\"webhook_dispatches\"," in source
    assert "\"notifications\"," in source

    assert "\"version\"" in source
    assert "sa.Column(\"transport\"" in source
    assert "uq_automation_runs_product_type" in source
    assert "ix_products_user_status" in source
    assert "ix_automation_runs_product_updated_at" in source
    assert "ix_webhook_dispatches_status_created_at" in source
    assert "ix_notifications_user_created_at" in source
    assert "down_revision = None" in source
