from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from src.configuration.config import Base, settings

# Entities register their tables on Base.metadata when imported
from src.modules.alerts.entities import PriceAlert  # noqa: F401
from src.modules.conversations.entities import Message  # noqa: F401
from src.modules.identities.entities import Contact, User  # noqa: F401
from src.modules.recurring.entities import RecurringPayment  # noqa: F401
from src.modules.transfers.entities import Transfer  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url():
    return settings.DATABASE_URL


def run_migrations_offline() -> None:
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = get_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
