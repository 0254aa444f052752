from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from revision_engine.config import settings

engine = create_engine(settings.database_url, echo=settings.echo_sql)

if settings.database_url.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def init_db(bind=None):
    """Create all tables"""
    # Models must be imported so they register on Base.metadata
    import revision_engine.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
