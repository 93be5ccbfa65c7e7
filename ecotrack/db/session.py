from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from ecotrack.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

# The platform's hosted Postgres; pre-ping because the pooler drops idle connections
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True,
                       connect_args=connect_args, future=True)

if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # ON DELETE CASCADE / SET NULL are off by default in SQLite
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
