import logging
import os

from dotenv import load_dotenv


load_dotenv()

TELEGRAM_TOKEN = os.environ.get("TELEGRAM_TOKEN")
DISCORD_TOKEN = os.environ.get("DISCORD_TOKEN")

DB_BACKEND = os.environ.get("DB_BACKEND", "sqlite").lower()
DB_PATH = os.environ.get("DB_PATH", "renaissance.db")

PG_PARAMS = {
    "host": os.environ.get("PG_HOST", "localhost"),
    "port": int(os.environ.get("PG_PORT", "5432")),
    "dbname": os.environ.get("PG_DBNAME", "renaissance"),
    "user": os.environ.get("PG_USER", "postgres"),
    "password": os.environ.get("PG_PASSWORD", ""),
}

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def configure_logging() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_repositories():
    """Return `(ledger_repo, stats_repo)` for the configured backend."""

    if DB_BACKEND == "postgres":
        from infrastructure.db.ledger_repository_postgres import PostgresLedgerRepository
        from infrastructure.db.user_stats_repository_postgres import (
            PostgresUserStatsRepository,
        )

        ledger_repo = PostgresLedgerRepository(PG_PARAMS)
        # The ledger repository already installed the schema.
        stats_repo = PostgresUserStatsRepository(PG_PARAMS, install_schema=False)
        return ledger_repo, stats_repo

    if DB_BACKEND == "sqlite":
        from infrastructure.db.ledger_repository_sqlite import SqliteLedgerRepository
        from infrastructure.db.user_stats_repository_sqlite import (
            SqliteUserStatsRepository,
        )

        return SqliteLedgerRepository(DB_PATH), SqliteUserStatsRepository(DB_PATH)

    raise RuntimeError(f"Unsupported DB_BACKEND: {DB_BACKEND!r} (use 'sqlite' or 'postgres').")
