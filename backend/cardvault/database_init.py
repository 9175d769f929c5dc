# cardvault/database_init.py
import logging
from sqlalchemy_utils import database_exists, create_database
from cardvault.database import Base, DATABASE_URL, engine

logger = logging.getLogger(__name__)

def ensure_database():
    if not database_exists(DATABASE_URL):
        create_database(DATABASE_URL)
        logger.info("Database created: %s", engine.url.render_as_string(hide_password=True))
    else:
        logger.info("Database already exists: %s", engine.url.render_as_string(hide_password=True))

def create_tables(bind=engine):
    # register every model on Base.metadata
    from cardvault import models  # noqa: F401
    Base.metadata.create_all(bind=bind)
