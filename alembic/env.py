from __future__ import annotations


import os
import sys
from logging.config import fileConfig
from dotenv import load_dotenv
from alembic import context

# === 1. Добавляем путь к проекту, чтобы видеть пакет warehouse_erp ===
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if BASE_DIR not in sys.path:
    sys.path.append(BASE_DIR)


load_dotenv()
# === 2. Импортируем Base и engine проекта ===
from warehouse_erp.db import Base, engine
# импорт всех моделей, чтобы Alembic их видел
import warehouse_erp.models  # noqa: F401

# Это объект конфигурации Alembic, даёт доступ к .ini
config = context.config
db_url = os.getenv("DATABASE_URL")
if not db_url:
    raise RuntimeError("DATABASE_URL is not set (check .env)")

config.set_main_option("sqlalchemy.url", db_url)
# Логирование Alembic
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# === 3. Какие метаданные отслеживать ===
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Запуск миграций в offline-режиме (генерация SQL без подключения к БД)."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Обычный онлайн-режим миграций (подключаемся к БД и меняем схему)."""
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,  # отслеживать изменения типов/размеров
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
