# data/database.py

from sqlmodel import SQLModel, create_engine, Session

from core.config import DATABASE_URL, SQL_ECHO

# ---------------------------
# Database configuration
# ---------------------------
# SQLite needs check_same_thread off: FastAPI hands sessions across threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# SITETASK_SQL_ECHO=1 logs SQL statements to stdout (helpful for debugging)
engine = create_engine(DATABASE_URL, echo=SQL_ECHO, connect_args=connect_args)


def register_models() -> None:
    """Import every table module so SQLModel metadata and mappers are complete."""
    import models.assignments  # noqa: F401
    import models.users        # noqa: F401
    import models.tasks        # noqa: F401
    import models.work_reports  # noqa: F401


def init_db(bind=None) -> None:
    """
    Initialize the database.

    Creates all tables defined in SQLModel metadata if they don't already exist.
    """
    register_models()
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """
    Dependency for FastAPI routes.

    Yields a database session that is automatically closed afterwards.
    """
    with Session(engine) as session:
        yield session
