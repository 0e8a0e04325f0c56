# apps/backend/tracker/db.py
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from tracker.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url.strip()

Base = declarative_base()

engine = None
SessionLocal = None


def make_engine(url: str):
  if url.startswith("sqlite"):
    return create_engine(url, connect_args={"check_same_thread": False})
  return create_engine(
    url,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
  )


if DATABASE_URL:
  engine = make_engine(DATABASE_URL)
  SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
else:
  # Not fatal: the collector keeps answering 200 and clients fall back.
  logger.warning("DATABASE_URL is not set, document store disabled")


def get_db():
  if SessionLocal is None:
    yield None
    return
  db = SessionLocal()
  try:
    yield db
  finally:
    db.close()
