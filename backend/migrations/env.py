from __future__ import annotations
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
import os, sys

# migrations/ sits next to the mall_admin package
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from mall_admin.models.authz import Base  # noqa: E402
import mall_admin.models.audit  # noqa: E402,F401
import mall_admin.models.resource_item  # noqa: E402,F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Same source as create_app(), so the app and its migrations never disagree on the target.
config.set_main_option('sqlalchemy.url', os.getenv('DATABASE_URL', 'sqlite:///dev.db'))
target_metadata = Base.metadata


def _is_sqlite() -> bool:
    return config.get_main_option('sqlalchemy.url').startswith('sqlite')


def run_migrations_offline():
    context.configure(
        url=config.get_main_option('sqlalchemy.url'),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=_is_sqlite(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    engine = engine_from_config(config.get_section(config.config_ini_section), prefix='sqlalchemy.', poolclass=pool.NullPool)
    with engine.connect() as connection:
        # batch mode lets ALTERs run on SQLite by copying the table
        context.configure(connection=connection, target_metadata=target_metadata,
                          render_as_batch=_is_sqlite(), compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
