"""
Evalify Quiz Attempt Service
MongoDB question document store
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo import AsyncMongoClient

from ...config import get_settings

# Configure logging
logger = logging.getLogger(__name__)

_mongo_client: Optional[AsyncMongoClient] = None


class QuestionStore:
    """Read access to the question documents of a quiz"""

    def __init__(self, collection):
        self.collection = collection

    async def fetch_questions(self, quiz_id: str) -> List[Dict[str, Any]]:
        """All questions of a quiz, in natural (insertion) order"""
        cursor = self.collection.find({"quizId": quiz_id})
        return await cursor.to_list(length=None)


async def init_document_store(mongo_url: Optional[str] = None) -> AsyncMongoClient:
    """Open the MongoDB client and check it answers"""
    global _mongo_client

    settings = get_settings()
    _mongo_client = AsyncMongoClient(mongo_url or settings.MONGO_URL)

    try:
        await _mongo_client.admin.command("ping")
        logger.info("✅ MongoDB connection established")
    except Exception as e:
        logger.error(f"❌ MongoDB connection failed: {e}")
        raise

    return _mongo_client


def get_question_store() -> QuestionStore:
    """FastAPI dependency for the question store"""
    if _mongo_client is None:
        raise RuntimeError("Document store not initialized. Call init_document_store() first.")

    settings = get_settings()
    collection = _mongo_client[settings.MONGO_DB_NAME][settings.QUESTIONS_COLLECTION]
    return QuestionStore(collection)


async def close_document_store():
    global _mongo_client

    if _mongo_client is not None:
        await _mongo_client.close()
        _mongo_client = None
        logger.info("✅ MongoDB connection closed")


__all__ = [
    "QuestionStore",
    "init_document_store",
    "get_question_store",
    "close_document_store",
]
