"""Migration file discovery (no database required)"""
from pathlib import Path

from migrate import EXPECTED_TABLES, MigrationRunner

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "sql" / "migrations"


def test_migration_files_sorted_with_checksums():
    runner = MigrationRunner("postgresql://localhost/promolink", MIGRATIONS_DIR)
    migrations = runner.get_migration_files()

    assert [version for version, _, _ in migrations][0] == 1
    assert all(len(checksum) == 64 for _, _, checksum in migrations)


def test_invalid_filenames_skipped(tmp_path):
    (tmp_path / "002_second.sql").write_text("SELECT 2;")
    (tmp_path / "001_first.sql").write_text("SELECT 1;")
    (tmp_path / "notes.sql").write_text("-- scratch")

    runner = MigrationRunner("postgresql://localhost/promolink", tmp_path)
    assert [file.name for _, file, _ in runner.get_migration_files()] == ["001_first.sql", "002_second.sql"]


def test_schema_declares_expected_tables():
    sql = (MIGRATIONS_DIR / "001_marketplace.sql").read_text()
    for table in EXPECTED_TABLES - {"schema_migrations"}:
        assert f"CREATE TABLE IF NOT EXISTS {table}" in sql
    assert "UNIQUE (shopify_order_id, topic)" in sql


def test_dashboard_indexes_migration_follows_schema():
    runner = MigrationRunner("postgresql://localhost/promolink", MIGRATIONS_DIR)
    names = [file.name for _, file, _ in runner.get_migration_files()]
    assert names[:2] == ["001_marketplace.sql", "002_dashboard_queries.sql"]

    sql = (MIGRATIONS_DIR / "002_dashboard_queries.sql").read_text()
    assert "ON affiliate_links (creator_id" in sql
    assert "ON sales (shop_domain, sale_date DESC)" in sql
