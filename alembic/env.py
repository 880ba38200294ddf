from logging.config import fileConfig
from os import getenv

from sqlalchemy import engine_from_config, pool
from alembic import context

from restopos.core.config import settings
from restopos.db.base import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# The managed store is migrated with its Postgres connection string; the
# local store defaults to DATABASE_URL.
database_url = getenv("MIGRATION_DATABASE_URL", settings.database_url)


def run_migrations_offline():
    """Offline mode: emit SQL for the managed service's SQL editor."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        {"sqlalchemy.url": database_url},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
