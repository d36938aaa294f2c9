"""
Persistence layer: SQLAlchemy models, the DBStorage handle and the credential store.

There is no module-level storage instance; the app factory builds one from
DATABASE_URL and hands it to whoever needs it.
"""
from models.db_storage import DBStorage  # noqa: F401
