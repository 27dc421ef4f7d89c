import logging
from sqlalchemy import create_engine, Enum
from sqlalchemy.orm import sessionmaker, declarative_base

from app.core.config import settings

logger = logging.getLogger(__name__)

if settings.DATABASE_URL.startswith("sqlite"):
    engine = create_engine(settings.DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, pool_size=20, max_overflow=30)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def value_enum(enum_cls, name: str) -> Enum:
    """Enum column type that persists the member values ("in_progress") instead of the names."""
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    # registers every table on Base.metadata
    from app.models import exam, question, exam_attempt, user_answer, security_event  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database schema ensured")
