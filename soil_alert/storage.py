import logging
from datetime import datetime, timezone
from typing import Generator, Optional

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from soil_alert.config import settings
from soil_alert.errors import PersistenceError
from soil_alert.utils import normalize_phone_number

logger = logging.getLogger(__name__)

# check_same_thread=False lets SQLite sessions cross FastAPI's threadpool
# and the scheduler's worker thread
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    echo=False,
)

# Create SessionLocal class for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug(f"Initializing database with URL: {settings.DATABASE_URL}")
    try:
        # Import models to register them with Base.metadata
        from soil_alert.models import Contact  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    """
    Check if the database is reachable and schema is applied.

    Returns:
        True if DB is healthy and the farmers table exists, False otherwise.
    """
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
            if not inspect(db.get_bind()).has_table("farmers"):
                logger.error("Database schema not applied: 'farmers' table not found")
                return False
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


# =============================================================================
# Contact Repository Functions
# =============================================================================

def _write_contact(db: Session, name: Optional[str], phone_number: str):
    from soil_alert.models import Contact, CONTACT_ID

    contact = db.get(Contact, CONTACT_ID)
    if contact is None:
        contact = Contact(id=CONTACT_ID)
        db.add(contact)

    contact.name = name
    contact.phone_number = phone_number
    contact.updated_at = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    db.commit()
    db.refresh(contact)
    return contact


def upsert_contact(
    db: Session,
    name: Optional[str],
    phone_number: str,
    country_code: str = settings.COUNTRY_CODE,
):
    """
    Insert the farmer contact, or replace the existing one wholesale.

    Last writer wins: when a concurrent first insert beats this one, the
    write is retried once as an update of that row.

    Args:
        db: Database session
        name: Optional display name (None clears the stored name)
        phone_number: Raw phone number, country code prefixed if absent
        country_code: Country code used for normalization

    Returns:
        The stored Contact

    Raises:
        ValidationError: Number fails the pattern; nothing is written
        PersistenceError: The write failed and was rolled back
    """
    normalized = normalize_phone_number(phone_number, country_code)
    logger.info(f"Upserting farmer contact: {normalized}")

    try:
        try:
            contact = _write_contact(db, name, normalized)
        except IntegrityError:
            db.rollback()
            logger.info("Farmer contact inserted concurrently, retrying as update")
            contact = _write_contact(db, name, normalized)

        logger.info("Farmer contact stored")
        return contact

    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to store farmer contact: {e}")
        raise PersistenceError("Failed to update farmer number") from e


def get_contact(db: Session):
    """
    Retrieve the farmer contact.

    Returns:
        Contact object if set, None otherwise
    """
    from soil_alert.models import Contact, CONTACT_ID

    try:
        return db.get(Contact, CONTACT_ID)
    except SQLAlchemyError as e:
        logger.error(f"Failed to read farmer contact: {e}")
        raise PersistenceError("Failed to retrieve farmer number") from e


def get_latest_phone_number(db: Session) -> Optional[str]:
    """Phone number of the stored contact, or None if unset."""
    contact = get_contact(db)
    return contact.phone_number if contact else None
