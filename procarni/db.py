from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from procarni.core.settings import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        # needed for SQLite with FastAPI threads; timeout is the busy timeout in seconds
        return {"check_same_thread": False, "timeout": settings.FETCH_TIMEOUT_SECONDS}
    if url.startswith("postgresql"):
        timeout_ms = int(settings.FETCH_TIMEOUT_SECONDS * 1000)
        return {
            "connect_timeout": max(1, int(settings.FETCH_TIMEOUT_SECONDS)),
            "options": f"-c statement_timeout={timeout_ms}",
        }
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
