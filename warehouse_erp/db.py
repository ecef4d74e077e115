from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


def _engine_options(url: str) -> dict:
    """
    Параметры пула соединений.
    Расчёт остатка открывает до STOCK_QUERY_WORKERS сессий на товар, а сводка
    считает несколько товаров сразу, поэтому размер пула задаётся из настроек.
    """
    options = {"pool_pre_ping": True, "future": True}
    # SQLite в памяти живёт на одном соединении, пул ему не настраивается
    if ":memory:" not in url:
        options["pool_size"] = settings.DB_POOL_SIZE
        options["max_overflow"] = settings.DB_MAX_OVERFLOW
    if url.startswith("sqlite"):
        # сессии расчёта открываются в потоках пула задач
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# Без автокоммита и автофлаша: шаги записи документов коммитятся явно
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


def pool_capacity() -> int:
    """Сколько соединений движок может выдать одновременно."""
    return settings.DB_POOL_SIZE + settings.DB_MAX_OVERFLOW


def get_db():
    """Зависимость FastAPI: Session на запрос, закрывается после ответа."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """Зависимость FastAPI: фабрика сессий для сервисов, которые открывают свои сессии (параллельные запросы)."""
    return SessionLocal
