"""
TASKTRACK - Database Module

MongoDB connection management using Motor (async driver).
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from tasktrack.config import settings

logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        """Connect to MongoDB and make sure lookup indexes exist."""
        self.client = AsyncIOMotorClient(settings.MONGODB_URI, tz_aware=True)
        self.db = self.client[settings.MONGODB_DATABASE]
        await self.ensure_indexes()

    async def ensure_indexes(self) -> None:
        """Create the indexes the identity and task lookups rely on."""
        db = self.get_database()
        identities = db["identities"]
        # Email is unique for registration only; federated accounts may share it.
        await identities.create_index([("email", ASCENDING)])
        await identities.create_index([("federated_id", ASCENDING)], unique=True, sparse=True)
        await identities.create_index([("verification_token", ASCENDING)], sparse=True)
        await identities.create_index([("refresh_token", ASCENDING)], sparse=True)

        tasks = db["tasks"]
        await tasks.create_index([("owner_id", ASCENDING), ("created_at", ASCENDING)])
        await tasks.create_index([("assigned_to", ASCENDING)], sparse=True)
        logger.info("MongoDB indexes ensured on %s", settings.MONGODB_DATABASE)

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get the database instance."""
        if self.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self.db


# Singleton database instance
database = Database()


async def get_database() -> AsyncIOMotorDatabase:
    """Dependency to get the database instance."""
    return database.get_database()
