"""
Alembic environment for the StayHub schema.

The URL comes from DATABASE_URL_SYNC unless overridden on the command line:
    alembic -x db_url=postgresql://... upgrade head
Migration 002 needs PostgreSQL (btree_gist exclusion constraint).
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from stayhub.core.config import get_settings
from stayhub.db.base import Base
import stayhub.models  # noqa: F401  registers users, listings, reservations on Base.metadata

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

db_url = context.get_x_argument(as_dictionary=True).get("db_url") or get_settings().DATABASE_URL_SYNC
config.set_main_option("sqlalchemy.url", db_url)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it."""
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
