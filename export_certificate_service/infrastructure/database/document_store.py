# Durable store for export documents (one MongoDB collection per journey)
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument

logger = logging.getLogger(__name__)

SortSpec = Sequence[Tuple[str, int]]


class MongoDocumentStore:
    """
    Thin async wrapper over a collection. Every filter arrives fully formed
    (ownership clauses included); this class never widens or narrows it.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @property
    def name(self) -> str:
        return self.collection.name

    async def find_one(self, query: Dict[str, Any], projection: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        logger.debug(f"[STORE-FIND-ONE][{self.name}][QUERY][{query}]")
        return await self.collection.find_one(query, projection)

    async def find_many(
        self,
        query: Dict[str, Any],
        sort: Optional[SortSpec] = None,
        limit: int = 0,
        skip: int = 0,
        projection: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        cursor = self.collection.find(query, projection)
        if sort:
            cursor = cursor.sort(list(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        documents = await cursor.to_list(length=limit or None)
        logger.debug(f"[STORE-FIND-MANY][{self.name}][QUERY][{query}][RESULTS][{len(documents)}]")
        return documents

    async def count(self, query: Dict[str, Any], limit: int = 0) -> int:
        if limit:
            return await self.collection.count_documents(query, limit=limit)
        return await self.collection.count_documents(query)

    async def exists(self, query: Dict[str, Any]) -> bool:
        return await self.collection.find_one(query, {"_id": 1}) is not None

    async def find_one_and_update(
        self,
        query: Dict[str, Any],
        update: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Applies a conditional update to one document and returns it as it was
        before the update, or None when nothing matched. Never upserts.
        """
        document = await self.collection.find_one_and_update(
            query,
            update,
            projection=projection,
            upsert=False,
            return_document=ReturnDocument.BEFORE,
        )
        logger.debug(
            f"[STORE-FIND-ONE-AND-UPDATE][{self.name}][QUERY][{query}][UPDATE][{update}]"
            f"[MATCHED][{document is not None}]"
        )
        return document

    async def insert_one(self, document: Dict[str, Any]) -> None:
        # insert_one adds _id to the dict it is given; keep the caller's copy clean
        await self.collection.insert_one(dict(document))
        logger.debug(f"[STORE-INSERT-ONE][{self.name}][DOCUMENT-NUMBER][{document.get('documentNumber')}]")

    async def find_one_and_delete(
        self, query: Dict[str, Any], projection: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        document = await self.collection.find_one_and_delete(query, projection=projection)
        logger.debug(f"[STORE-FIND-ONE-AND-DELETE][{self.name}][QUERY][{query}][DELETED][{document is not None}]")
        return document
