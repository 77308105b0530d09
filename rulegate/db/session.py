# rulegate/db/session.py
from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rulegate.db.models import Base  # важно, чтобы модели были импортированы

_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def _ensure_sqlite_dir(db_url: str) -> None:
    # sqlite:///./data/rules.db  → ./data
    if db_url.startswith("sqlite"):
        # Отбрасываем префикс sqlite:///
        prefix = "sqlite:///"
        if db_url.startswith(prefix):
            fs_path = db_url[len(prefix):]
            # :memory: ничего не делаем
            if fs_path == ":memory:":
                return
            d = Path(fs_path).resolve().parent
            d.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_fk(dbapi_conn, _record) -> None:
    # без этого SQLite игнорирует ON DELETE CASCADE
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    """
    Создать engine. Для sqlite в памяти держим одно соединение (StaticPool),
    иначе каждая сессия увидит свою пустую базу.
    """
    _ensure_sqlite_dir(db_url)

    if db_url in _MEMORY_URLS:
        engine = create_engine(
            db_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif db_url.startswith("sqlite"):
        # синхронные ручки FastAPI ходят в базу из пула потоков
        engine = create_engine(
            db_url,
            future=True,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(db_url, future=True)

    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_fk)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    # фабрика сессий
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def init_db(engine: Engine) -> None:
    """Создать таблицы, если их ещё нет."""
    Base.metadata.create_all(bind=engine)


def setup_database(db_url: str) -> sessionmaker:
    """Вызываем на старте приложения: engine + таблицы + фабрика сессий."""
    engine = create_db_engine(db_url)
    init_db(engine)
    return make_session_factory(engine)
