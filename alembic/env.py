from __future__ import annotations

from logging.config import fileConfig

from alembic import context

from eventraffle.db.engine import DEFAULT_SQLITE_URL, ROOT_DIR, make_engine
from eventraffle.db.utils import resolve_sqlite_url
from eventraffle.models import Base  # noqa: F401 - import populates metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# `alembic -x db_url=sqlite:///./other.db upgrade head` targets another
# database without touching DB_URL.
DATABASE_URL = resolve_sqlite_url(
    context.get_x_argument(as_dictionary=True).get("db_url", DEFAULT_SQLITE_URL),
    ROOT_DIR,
)
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))


def run_migrations_offline() -> None:
    """Emit the raffle schema as SQL without connecting."""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=DATABASE_URL.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations through the same engine the raffle uses.

    SQLite cannot alter constraints in place, so the events -> prizes
    foreign key is added in batch mode there.
    """
    engine = make_engine(database_url=DATABASE_URL)
    try:
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
                render_as_batch=connection.dialect.name == "sqlite",
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
