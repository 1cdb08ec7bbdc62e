import logging
from logging.config import fileConfig
import importlib
import pkgutil
from pathlib import Path

from flask import current_app
from alembic import context

config = context.config


def _init_logging():
    # alembic.ini may live in migrations/ or the repo root; neither is required
    for ini in (config.config_file_name, Path(__file__).resolve().parents[1] / "alembic.ini"):
        if ini and Path(ini).exists():
            fileConfig(str(ini))
            return
    logging.basicConfig(level=logging.INFO)


_init_logging()
logger = logging.getLogger("alembic.env")

target_db = current_app.extensions["migrate"].db


def get_engine():
    return target_db.engine


def get_engine_url():
    return get_engine().url.render_as_string(hide_password=False).replace("%", "%%")


config.set_main_option("sqlalchemy.url", get_engine_url())


def _autoload_models():
    """Import every muddiest.models module so autogenerate sees all tables and constraints."""
    import muddiest.models as models_pkg
    for m in pkgutil.iter_modules(models_pkg.__path__):
        importlib.import_module(f"muddiest.models.{m.name}")


def _is_sqlite(url) -> bool:
    return str(url).startswith("sqlite")


def run_migrations_offline():
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    _autoload_models()
    context.configure(
        url=url,
        target_metadata=target_db.metadata,
        literal_binds=True,
        compare_type=True,
        compare_server_default=True,
        # SQLite dev databases cannot ALTER constraints in place
        render_as_batch=_is_sqlite(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations in 'online' mode."""
    def process_revision_directives(context_, revision, directives):
        if getattr(config.cmd_opts, "autogenerate", False):
            script = directives[0]
            if script.upgrade_ops.is_empty():
                directives[:] = []
                logger.info("No changes in schema detected.")

    _autoload_models()
    connectable = get_engine()
    conf_args = {
        **current_app.extensions["migrate"].configure_args,
        "process_revision_directives": process_revision_directives,
        "compare_type": True,
        "compare_server_default": True,
        "render_as_batch": _is_sqlite(connectable.url),
        "target_metadata": target_db.metadata,
    }
    with connectable.connect() as connection:
        context.configure(connection=connection, **conf_args)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
