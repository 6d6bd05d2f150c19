from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from threadbridge.logging_config import get_logger

logger = get_logger("database")

Base = declarative_base()


def create_session_factory(database_url: str) -> sessionmaker:
    """Create engine + session factory and make sure session tables exist.

    An unreachable database is logged, not raised; the store starts empty and
    later writes fail per update.
    """
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)

    # Register models on Base before create_all.
    import threadbridge.models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        logger.error(f"Session database unavailable: {e}")
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
