"""Alembic environment for the documents schema.

Migrations run synchronously through psycopg2 against the database the service
itself resolves (`doc_service.db.DatabaseConfig`).
"""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context
from doc_service.db import DatabaseConfig

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def sync_url() -> str:
    """The service DSN with the psycopg2 driver selected."""
    url = DatabaseConfig.get_connection_string()
    scheme, sep, rest = url.partition("://")
    if sep and scheme in ("postgres", "postgresql"):
        return f"postgresql+psycopg2://{rest}"
    return url


def run_migrations() -> None:
    if context.is_offline_mode():
        # `alembic upgrade head --sql`: emit the SQL without connecting
        context.configure(url=sync_url(), target_metadata=None, literal_binds=True)
        with context.begin_transaction():
            context.run_migrations()
        return

    engine = create_engine(sync_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=None)
        with context.begin_transaction():
            context.run_migrations()


run_migrations()
