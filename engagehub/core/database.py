"""
MongoDB database connection and utilities.

The API uses the async Motor client held by ``Database``; the worker uses a
plain PyMongo client from ``get_pymongo_db`` since its cycle is blocking.
"""

import logging
from functools import lru_cache
from typing import Tuple
from urllib.parse import urlparse

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import MongoClient

from engagehub.core.config import get_settings

logger = logging.getLogger(__name__)

JOBS_COLLECTION = "prediction_jobs"
CONTENTS_COLLECTION = "contents"


def effective_mongo_uri_and_db() -> Tuple[str, str]:
    settings = get_settings()
    uri = (settings.MONGODB_URI or "").strip()
    if not uri:
        return (settings.MONGO_URI or "").strip(), (settings.MONGO_DB_NAME or "").strip()

    parsed = urlparse(uri)
    path = (parsed.path or "").lstrip("/")
    db = path.split("/")[0] if path else (settings.MONGO_DB_NAME or "engagehub")
    return uri, db


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

    @classmethod
    async def connect(cls):
        """Connect to MongoDB."""
        uri, db_name = effective_mongo_uri_and_db()
        cls.client = AsyncIOMotorClient(uri)
        cls.db = cls.client[db_name]

        await cls._create_indexes()

        logger.info(f"Connected to MongoDB: {db_name}")

    @classmethod
    async def disconnect(cls):
        """Disconnect from MongoDB."""
        if cls.client:
            cls.client.close()
            logger.info("Disconnected from MongoDB")

    @classmethod
    async def _create_indexes(cls):
        """Create database indexes for better query performance."""
        jobs = cls.db[JOBS_COLLECTION]
        # Claim query: status + next_run_at
        await jobs.create_index([("status", 1), ("next_run_at", 1)])
        await jobs.create_index([("enqueued_by", 1), ("created_at", -1)])
        await jobs.create_index("created_at")

    @classmethod
    def get_collection(cls, name: str):
        """Get a collection by name."""
        return cls.db[name]


def get_db() -> AsyncIOMotorDatabase:
    """Get the database instance."""
    return Database.db


@lru_cache
def get_pymongo_db():
    uri, db_name = effective_mongo_uri_and_db()
    client = MongoClient(uri)
    return client[db_name]
