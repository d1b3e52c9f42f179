from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from reviewflow.config import DATABASE_URL
from reviewflow.models import Base

# -------------------------------------------------
# Database URL (MANDATORY)
# -------------------------------------------------
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set. Check your .env file.")

# -------------------------------------------------
# SQLAlchemy engine & session
# -------------------------------------------------
engine_options = {"pool_pre_ping": True}

if DATABASE_URL.startswith("sqlite"):
    # one shared connection, so an in-memory database outlives a session
    engine_options.update(
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

engine = create_engine(DATABASE_URL, **engine_options)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


def init_db():
    Base.metadata.create_all(engine)


# -------------------------------------------------
# Dependency for FastAPI
# -------------------------------------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
