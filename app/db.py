from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings

engine = create_engine(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)

# Rows are read after their session closes, sometimes on another thread
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
