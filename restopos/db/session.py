"""Local store engine and session management."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from restopos.core.config import settings

connect_args: dict[str, bool] = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
