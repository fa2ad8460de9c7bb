"""Migration environment for the catalog schema."""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine, pool

from src.catalog.db.db_models import Base

load_dotenv(".env.local")
load_dotenv(".env", override=False)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

DATABASE_URL = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")


def _configure(**options) -> None:
    # SQLite cannot ALTER most constraints in place
    context.configure(
        target_metadata=Base.metadata,
        render_as_batch=DATABASE_URL.startswith("sqlite"),
        compare_type=True,
        **options,
    )


if context.is_offline_mode():
    _configure(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()
else:
    engine = create_engine(DATABASE_URL, poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()
