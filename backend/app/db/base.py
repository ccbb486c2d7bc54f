from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker

from ..config import get_settings

# Load environment variables
load_dotenv()

DATABASE_URL = get_settings().DATABASE_URL

# Create SQLAlchemy engine
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)

# Create a scoped session factory
SessionLocal = scoped_session(sessionmaker(autocommit=False, autoflush=False, bind=engine))


def init_db(bind=None) -> None:
    """Create the ledger tables if they do not exist."""
    from ..models.sql_models import Base

    Base.metadata.create_all(bind=bind or engine)
