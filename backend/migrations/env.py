"""
Alembic environment for the vault schema.

The target URL comes from healthvault's Config (DATABASE_URL or the
local/cloud PostgreSQL settings), so migrations always run against the
same database the API serves. Run from backend/: ``alembic upgrade head``.
"""

from logging.config import fileConfig

from alembic import context

from healthvault import models  # noqa: F401 - populates Base.metadata
from healthvault.config import config as vault_config
from healthvault.db.session import Base, build_engine, normalize_url

alembic_config = context.config
if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

database_url = vault_config.get_database_url()

# compare_type: column lengths follow Config limits (e.g. MAX_TAG_LENGTH)
migration_options = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    # SQLite cannot ALTER columns in place
    "render_as_batch": database_url.startswith("sqlite"),
}

if context.is_offline_mode():
    context.configure(
        url=normalize_url(database_url),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **migration_options,
    )
    with context.begin_transaction():
        context.run_migrations()
else:
    engine = build_engine(database_url)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **migration_options)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()
