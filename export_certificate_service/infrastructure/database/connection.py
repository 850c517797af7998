import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from export_certificate_service.app.config import AppSettings

logger = logging.getLogger(__name__)

# The client is created and closed by the process bootstrap (app.main) and
# handed to whoever needs it; nothing here holds module-level state.

async def connect_to_mongo(settings: AppSettings) -> AsyncIOMotorClient:
    try:
        logger.info(f"Attempting to connect to MongoDB at {settings.MONGO_DETAILS}...")
        client = AsyncIOMotorClient(settings.MONGO_DETAILS)
        # Verify connection by pinging the admin database
        await client.admin.command('ping')
        logger.info(f"Successfully connected to MongoDB, database '{settings.DB_NAME}'.")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}", exc_info=True)
        raise ConnectionError(f"Failed to connect to MongoDB: {e}") from e

def get_database(client: AsyncIOMotorClient, settings: AppSettings) -> AsyncIOMotorDatabase:
    return client[settings.DB_NAME]

def close_mongo_connection(client: Optional[AsyncIOMotorClient]):
    if client:
        client.close()
        logger.info("MongoDB connection closed.")
