from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings


def build_engine(database_url: str) -> Engine:
    """Create an engine with per-backend connection settings."""
    url = make_url(database_url)
    backend = url.get_backend_name()
    connect_args = {}
    options = {"pool_pre_ping": True}

    if backend.startswith("postgresql"):
        connect_args["options"] = "-c timezone=utc"
        options["isolation_level"] = settings.DB_ISOLATION_LEVEL
    elif backend == "sqlite":
        connect_args["check_same_thread"] = False
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            options["poolclass"] = StaticPool

    return create_engine(database_url, connect_args=connect_args, **options)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
