"""Initialize the parkmarket database."""
import asyncio

from loguru import logger

from parkmarket.infrastructure.persistence.database import init_db

if __name__ == "__main__":
    logger.info("Initializing parkmarket database...")
    asyncio.run(init_db())
    logger.info("Database initialization complete!")
