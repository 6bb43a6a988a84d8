"""Alembic environment for the users, favorites and sessions schema."""
from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

from anime_explorer.database import Base
from anime_explorer.models import User, UserFavorite, UserSession  # noqa: F401
from anime_explorer.settings import settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# The URL always comes from application settings (env / .env)
DATABASE_URL = settings.get_database_url()
config.set_main_option("sqlalchemy.url", DATABASE_URL)

target_metadata = Base.metadata

# SQLite cannot ALTER constraints in place
RENDER_AS_BATCH = DATABASE_URL.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=RENDER_AS_BATCH,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=RENDER_AS_BATCH,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
