"""
Database Connection and Session Management
Connects to the CRM PostgreSQL database (Supabase connection string)
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool
from contextlib import contextmanager
from typing import Iterator, Optional
import logging
import os
from dotenv import load_dotenv

from leadpool.domain.exceptions import StoreUnavailableError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Get or create the engine.

    For Supabase, get the URL from: Settings > Database > Connection String > URI

    Raises:
        ValueError: If DATABASE_URL is not set
    """
    global _engine
    if _engine is None:
        url = database_url or os.getenv("DATABASE_URL")
        if not url:
            raise ValueError("DATABASE_URL not found in environment variables. Check your .env file")
        _engine = create_engine(
            url,
            poolclass=NullPool,  # Disable connection pooling for serverless
            echo=False,
        )
    return _engine


def get_session_factory(database_url: Optional[str] = None) -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine(database_url))
    return _session_factory


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """
    Session with commit on success and rollback on error.

    Usage:
        with session_scope(factory) as db:
            db.get(LeadRecord, lead_id)

    Raises:
        StoreUnavailableError: On any database error
    """
    db = factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database operation failed: {e}", exc_info=True)
        raise StoreUnavailableError(f"Database operation failed: {e.__class__.__name__}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
