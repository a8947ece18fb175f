from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool, text

from alembic import context

import os
import sys
from pathlib import Path
from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from migrations.models import Base  # noqa: E402

target_metadata = Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

pg_dsn = os.getenv("PG_DSN")
if not pg_dsn:
    raise RuntimeError("PG_DSN environment variable must be set")
config.set_main_option("sqlalchemy.url", pg_dsn.replace("%", "%%"))

# The serving tables live in their own schema, shared with the sync pipeline.
pg_schema = os.getenv("PG_SCHEMA")
if not pg_schema:
    raise RuntimeError("PG_SCHEMA environment variable must be set")

for table in Base.metadata.tables.values():
    table.schema = pg_schema


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        version_table_schema=pg_schema,
        include_schemas=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        connection.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{pg_schema}"'))
        connection.execute(text(f'SET search_path TO "{pg_schema}"'))
        connection.commit()

        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            version_table_schema=pg_schema,
            include_schemas=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
