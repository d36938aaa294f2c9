from models.activity import Activity
from models.company import Company
from models.refresh_token import RefreshToken
from models.user import User
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from models.base_model import Base

# Map model names for easy querying
classes = {
    "Activity": Activity,
    "Company": Company,
    "RefreshToken": RefreshToken,
    "User": User,
}


class DBStorage:
    """
    Explicit database handle.

    Lifecycle: construct with a URL, reload() to create tables and open the
    scoped session registry, close() at the end of each request, dispose()
    on shutdown to drop pooled connections.
    """

    def __init__(self, database_url: str, echo: bool = False):
        """Initialize engine for the given URL"""
        if not database_url:
            raise ValueError("DATABASE_URL is required")
        kwargs = {"echo": echo}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # one shared connection, otherwise every checkout sees an empty database
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True
        self.__engine = create_engine(database_url, **kwargs)
        self.__session = None

        # Enable SQLite foreign keys (needed for ON DELETE CASCADE)
        if self.__engine.url.get_backend_name() == "sqlite":
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    def reload(self):
        """Create tables and start session"""
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        self.__session = scoped_session(session_factory)

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError:
            self.__session.rollback()
            raise

    def rollback(self):
        self.__session.rollback()

    def delete(self, obj=None):
        """Delete object if exists (hard delete)"""
        if obj:
            self.__session.delete(obj)

    def get(self, cls, id):
        """Fetch one object by class and ID"""
        if cls in classes.values():
            return self.__session.get(cls, id)
        return None

    def ping(self) -> bool:
        """True when the database answers a trivial query."""
        try:
            self.__session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            self.__session.rollback()
            return False

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    def dispose(self):
        """Close the session registry and every pooled connection."""
        self.close()
        self.__engine.dispose()

    # expose the SQLAlchemy session for advanced querying (joins, filters, etc.)
    def get_session(self):
        return self.__session
