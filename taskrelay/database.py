from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from taskrelay.config.settings import settings

connect_args = {}
engine_kwargs = {}

if settings.is_sqlite():
    # FastAPI serves requests from a threadpool
    connect_args["check_same_thread"] = False
    if settings.is_in_memory_sqlite():
        # One shared connection, otherwise every thread sees an empty database
        engine_kwargs["poolclass"] = StaticPool
elif settings.DB_SSLMODE:
    # If you're using PostgreSQL on Render or similar, set DB_SSLMODE=require
    connect_args["sslmode"] = settings.DB_SSLMODE

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, **engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Imported wherever a DB session is needed
def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables for the registered models"""
    # Models must be imported so they register on Base.metadata
    from taskrelay.models import task, user  # noqa: F401

    Base.metadata.create_all(bind=engine)
