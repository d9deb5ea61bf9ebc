from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from billing.core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False):
    """Crea el engine; SQLite no admite las opciones de pool de PostgreSQL."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=echo
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=echo
    )


engine = build_engine(settings.database_url, echo=settings.DEBUG and settings.ENVIRONMENT == "development")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

Base = declarative_base()

def get_db():
    """Genera una sesión de base de datos por request."""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database error: {e}")
        db.rollback()
        raise
    finally:
        db.close()
