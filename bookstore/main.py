# bookstore/main.py
import uvicorn

from bookstore.api import create_app
from bookstore.data.database import Base, engine
from bookstore.data import models  # noqa: F401  registers every table on Base.metadata
from bookstore.utils.logging import get_logger

app = create_app()

logger = get_logger(__name__)

logger.info(f"Initializing database, tables: {sorted(Base.metadata.tables.keys())}")
try:
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
except Exception as e:
    logger.error(f"Failed to create tables: {e}")
    raise


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
