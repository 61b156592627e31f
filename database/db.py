from sqlalchemy import create_engine               # SQLAlchemy engine factory
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import settings               # ✅ env based settings


def _engine_options(url: str) -> dict:
    # in-memory sqlite must share one connection across threads (TestClient)
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_pre_ping": True}


# ✅ engine built from the configured DB URL
engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# ✅ session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ✅ declarative base for every model
Base = declarative_base()


# ==========================================================
# [common] per-request DB session
# ==========================================================
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
