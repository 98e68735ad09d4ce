from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
import os
import logging
from pathlib import Path
from idcards.config import (
    COMPANIES_COLLECTION,
    FORMS_COLLECTION,
    GENERATED_CARDS_COLLECTION,
    SUBMISSIONS_COLLECTION,
    TEMPLATES_COLLECTION,
)

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger(__name__)

class Database:
    client: AsyncIOMotorClient = None
    db = None

    async def connect(self):
        try:
            mongo_url = os.environ['MONGO_URL']
            self.client = AsyncIOMotorClient(mongo_url)
            self.db = self.client[os.environ['DB_NAME']]
            # Verify connection
            await self.db.command("ping")
            logger.info(f"Connected to MongoDB: {os.environ['DB_NAME']}")

            await self._create_indexes()
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def close(self):
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    def get_db(self):
        return self.db

    async def _create_indexes(self):
        """Create MongoDB indexes for lookups and id uniqueness."""
        try:
            await self.db[TEMPLATES_COLLECTION].create_index("template_id", unique=True)
            await self.db[TEMPLATES_COLLECTION].create_index([("company_id", 1), ("status", 1)])

            # Form ids are random; the unique index turns a collision into DuplicateKeyError
            await self.db[FORMS_COLLECTION].create_index("form_id", unique=True)
            await self.db[FORMS_COLLECTION].create_index("company_id")

            await self.db[SUBMISSIONS_COLLECTION].create_index("submission_id", unique=True)
            await self.db[SUBMISSIONS_COLLECTION].create_index([("form_id", 1), ("submitted_at", -1)])
            await self.db[SUBMISSIONS_COLLECTION].create_index([("company_id", 1), ("status", 1)])

            await self.db[COMPANIES_COLLECTION].create_index("company_id", unique=True)

            await self.db[GENERATED_CARDS_COLLECTION].create_index("card_id", unique=True)
            await self.db[GENERATED_CARDS_COLLECTION].create_index("submission_id")
            await self.db[GENERATED_CARDS_COLLECTION].create_index("file_id", sparse=True)
            await self.db[GENERATED_CARDS_COLLECTION].create_index([("company_id", 1), ("generated_at", -1)])
            logger.info("MongoDB indexes created/verified")
        except Exception as e:
            # Indexes may already exist with different options, log but don't fail
            logger.warning(f"Index creation note: {e}")

# Global database instance
database = Database()

