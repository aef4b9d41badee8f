#!/usr/bin/env python3
"""
Database migration runner for PromoLink
Applies any new *.sql files not recorded in schema_migrations table
"""
import asyncio
import asyncpg
import hashlib
import logging
import sys
from pathlib import Path
from typing import Dict, List, Tuple
from lib.settings import settings

logger = logging.getLogger("promolink.migrate")

EXPECTED_TABLES = {'schema_migrations', 'affiliate_links', 'orders', 'sales', 'products'}


class MigrationRunner:
    def __init__(self, dsn: str, migrations_dir: Path = Path('sql/migrations')):
        self.dsn = dsn
        self.migrations_dir = migrations_dir
        self.conn = None

    async def connect(self):
        """Establish database connection"""
        self.conn = await asyncpg.connect(self.dsn)

    async def disconnect(self):
        """Close database connection"""
        if self.conn:
            await self.conn.close()

    async def ensure_migrations_table(self):
        """Create schema_migrations table if it doesn't exist"""
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                checksum TEXT NOT NULL,
                applied_at TIMESTAMPTZ DEFAULT NOW(),
                execution_time_ms INTEGER
            )
        """)

    async def get_applied_migrations(self) -> Dict[int, str]:
        """Get already applied migrations with their checksums"""
        rows = await self.conn.fetch("""
            SELECT version, checksum
            FROM schema_migrations
            ORDER BY version
        """)
        return {row['version']: row['checksum'] for row in rows}

    def get_migration_files(self) -> List[Tuple[int, Path, str]]:
        """Get all migration files sorted by version"""
        migrations = []

        for file in self.migrations_dir.glob('*.sql'):
            # 001_marketplace.sql -> 1
            try:
                version = int(file.name.split('_')[0])
            except (ValueError, IndexError):
                logger.warning(f"Skipping invalid migration filename: {file.name}")
                continue

            checksum = hashlib.sha256(file.read_bytes()).hexdigest()
            migrations.append((version, file, checksum))

        return sorted(migrations, key=lambda x: x[0])

    async def apply_migration(self, version: int, file: Path, checksum: str):
        """Apply a single migration inside a transaction"""
        name = file.stem
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        logger.info(f"Applying {name}...")
        sql = file.read_text(encoding='utf-8')

        async with self.conn.transaction():
            await self.conn.execute(sql)

            execution_time_ms = int((loop.time() - start_time) * 1000)
            await self.conn.execute("""
                INSERT INTO schema_migrations (version, name, checksum, execution_time_ms)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (version)
                DO UPDATE SET
                    checksum = $3,
                    applied_at = NOW(),
                    execution_time_ms = $4
            """, version, name, checksum, execution_time_ms)

        logger.info(f"{name} applied in {execution_time_ms}ms")

    async def run(self, force: bool = False) -> int:
        """Run all pending migrations, returning how many were applied"""
        await self.connect()
        try:
            await self.ensure_migrations_table()
            applied = await self.get_applied_migrations()
            migrations = self.get_migration_files()

            if not migrations:
                logger.info("No migration files found")
                return 0

            applied_count = 0
            for version, file, checksum in migrations:
                if version not in applied:
                    await self.apply_migration(version, file, checksum)
                    applied_count += 1
                elif applied[version] == checksum:
                    logger.info(f"{file.stem} already applied")
                elif force:
                    logger.warning(f"Re-applying {file.stem} (checksum changed)")
                    await self.apply_migration(version, file, checksum)
                    applied_count += 1
                else:
                    logger.warning(f"{file.stem} has changed but not re-applying (use --force)")

            logger.info(f"Applied {applied_count} of {len(migrations)} migrations")
            await self.verify_schema()
            return applied_count
        finally:
            await self.disconnect()

    async def verify_schema(self):
        """Warn about expected tables that are missing"""
        tables = await self.conn.fetch("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public'
            AND table_type = 'BASE TABLE'
        """)

        missing_tables = EXPECTED_TABLES - {t['table_name'] for t in tables}
        if missing_tables:
            logger.warning(f"Missing expected tables: {', '.join(sorted(missing_tables))}")
        else:
            logger.info(f"All {len(EXPECTED_TABLES)} expected tables present")


async def main():
    """CLI entry point"""
    if not settings.database_url:
        logger.error("DATABASE_URL not set - nothing to migrate")
        sys.exit(1)

    runner = MigrationRunner(str(settings.database_url))
    await runner.run(force='--force' in sys.argv)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    asyncio.run(main())
