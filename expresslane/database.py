from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from expresslane.config import settings

def build_engine(url: str):
    """Create an engine; SQLite connections are shared across the sweeper thread."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)

engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """Yield a request-scoped session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
