from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
import logging

logger = logging.getLogger(__name__)

# Columns added after the first release; older databases lack them
CLIENT_TIME_COLUMNS = {
    "visitor_access_requests": ["local_time", "client_timezone"],
    "contact_messages": ["local_time", "client_timezone"],
}


def column_exists(engine: Engine, table_name: str, column_name: str) -> bool:
    inspector = inspect(engine)
    columns = [c["name"] for c in inspector.get_columns(table_name)]
    return column_name in columns


def migrate(engine: Engine) -> bool:
    """
    Add the browser-supplied local_time / client_timezone columns where missing.
    Tables that do not exist yet are skipped; create_all builds them complete.
    """
    logger.info("Checking client time columns...")
    existing_tables = set(inspect(engine).get_table_names())
    missing = [
        (table_name, column_name)
        for table_name, columns in CLIENT_TIME_COLUMNS.items()
        if table_name in existing_tables
        for column_name in columns
        if not column_exists(engine, table_name, column_name)
    ]
    if not missing:
        logger.info("Client time columns already present. Skipping migration.")
        return True

    try:
        with engine.connect() as conn:
            for table_name, column_name in missing:
                logger.info(f"Adding {column_name} column to {table_name} table...")
                conn.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} VARCHAR(100)"))
            conn.commit()
    except Exception as e:
        logger.error(f"Error during migration: {e}")
        logger.error("You may need to add the local_time/client_timezone columns manually.")
        return False

    logger.info("Migration completed successfully!")
    return True
