from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from functools import lru_cache, wraps
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./bank_game.db"
    log_level: str = "INFO"

    # Bank dice game
    default_total_rounds: int = 20
    max_players: int = 20
    history_limit: int = 50
    doubles_rule: str = "always_double"

    # Logic-gate playground
    weight_init: str = "zero"
    weight_init_range: float = 1.0

    # Multiplayer rooms
    room_code_length: int = 4

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite needs check_same_thread=False: FastAPI serves sync endpoints from a thread pool
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency: yields a database session

    The session is always closed once the request is finished.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator: commits on success, rolls back on failure

    Usage:
        @transactional
        def some_business_logic(db: Session, ...):
            db.add(SavedGame(...))
            # no manual commit, the decorator handles it

    When the wrapped function raises:
        - the session is rolled back
        - the exception is re-raised for the caller to handle

    Notes:
        - the first argument (or the ``db`` keyword) must be the Session
        - do not commit inside the wrapped function
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
