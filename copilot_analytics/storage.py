import logging
from typing import Generator, List, Optional

from sqlalchemy import create_engine, inspect, text, func
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from copilot_analytics.config import settings
from copilot_analytics.records import Snapshot

logger = logging.getLogger(__name__)

TABLES = ("clientemensagem", "clienteagendamento")


def _connect_args(database_url: str) -> dict:
    # SQLite connections are shared across FastAPI's worker threads
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    echo=False,
)

# Create SessionLocal class for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


def init_db() -> None:
    """
    Register the ORM models and create any missing table.
    Called during application startup; existing tables are left untouched.
    """
    logger.debug(f"Initializing database with URL: {engine.url.render_as_string(hide_password=True)}")
    try:
        # Import models to register them with Base.metadata
        from copilot_analytics.models import Appointment, Message  # noqa: F401

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
    Check if the database is reachable and both source tables exist.

    Returns:
        True if DB is healthy, False otherwise.
    """
    logger.debug("Checking database health...")
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        inspector = inspect(engine)
        missing = [table for table in TABLES if not inspector.has_table(table)]
        if missing:
            logger.error(f"Database schema not applied: missing tables {missing}")
            return False
        logger.debug("Database health check passed")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


# =============================================================================
# Read Functions
# =============================================================================

def load_snapshot(db: Session) -> Snapshot:
    """
    Materialize every message and appointment as immutable records.

    Reports are always computed from a fresh snapshot; nothing is cached.
    Database errors propagate to the caller.
    """
    from copilot_analytics.models import Appointment, Message

    messages = tuple(row.to_record() for row in db.query(Message).order_by(Message.id.asc()))
    appointments = tuple(row.to_record() for row in db.query(Appointment).order_by(Appointment.id.asc()))
    logger.info(f"Snapshot loaded: {len(messages)} messages, {len(appointments)} appointments")
    return Snapshot(messages=messages, appointments=appointments)


def get_appointments(db: Session) -> list:
    """All appointments, most recently created first."""
    from copilot_analytics.models import Appointment

    appointments = (
        db.query(Appointment)
        .order_by(Appointment.created_at.desc(), Appointment.id.desc())
        .all()
    )
    logger.info(f"Retrieved {len(appointments)} appointments")
    return appointments


def get_contacts(db: Session) -> List[dict]:
    """
    Contacts that have messages, with the timestamp of their latest one.

    Returns:
        List of {"contact", "last_message_at"} dicts, latest first
    """
    from copilot_analytics.models import Message

    last_message_at = func.max(Message.timestamp).label("last_message_at")
    rows = (
        db.query(Message.contact, last_message_at)
        .filter(Message.contact.isnot(None), Message.contact != "")
        .group_by(Message.contact)
        .order_by(last_message_at.desc(), Message.contact.asc())
        .all()
    )
    logger.info(f"Retrieved {len(rows)} contacts")
    return [{"contact": row.contact, "last_message_at": row.last_message_at} for row in rows]


def get_messages(db: Session, contact: Optional[str] = None) -> list:
    """
    Retrieve chat log rows.

    Args:
        db: Database session
        contact: When given, only this contact's messages in chronological
            order (chat view); otherwise all messages, newest first

    Returns:
        List of Message ORM objects
    """
    from copilot_analytics.models import Message

    query = db.query(Message)
    if contact:
        query = query.filter(Message.contact == contact)
        query = query.order_by(Message.timestamp.asc(), Message.id.asc())
        logger.debug(f"Applied contact filter: {contact}")
    else:
        query = query.order_by(Message.timestamp.desc(), Message.id.desc())

    messages = query.all()
    logger.info(f"Retrieved {len(messages)} messages")
    return messages
