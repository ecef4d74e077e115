from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Конфиг pydantic-settings
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    DATABASE_URL: str
    APP_TITLE: str = "Warehouse ERP · Учёт реагентов и расходных материалов"
    LOG_LEVEL: str = "INFO"

    # Сколько запросов к журналу движения выполнять параллельно при расчёте остатка
    STOCK_QUERY_WORKERS: int = 4

    # "full"  — расход по дате вычитается из каждой партии этой даты целиком
    # "split" — расход по дате распределяется между партиями этой даты (по возрастанию цены)
    STOCK_DECREASE_APPORTIONMENT: Literal["full", "split"] = "full"

    # Пул соединений БД (pool_size + max_overflow — потолок одновременных сессий)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Размер пачки товаров при построении сводки остатков по складу
    STOCK_SUMMARY_CHUNK_SIZE: int = 15

    # Время жизни кэша справочника товаров, сек
    CATALOG_CACHE_TTL_SECONDS: int = 300


settings = Settings()
