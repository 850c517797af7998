# Shared fixtures: mongomock behind an async facade and an in-memory cache client
import pytest
from mongomock import MongoClient as MongoMockClient
from pymongo import ReturnDocument

from export_certificate_service.app.models.journey import Journey
from export_certificate_service.app.service.documents import DocumentService
from export_certificate_service.app.service.ownership import Owner
from export_certificate_service.infrastructure.cache.draft_cache import DraftCache
from export_certificate_service.infrastructure.database.document_store import MongoDocumentStore
from export_certificate_service.infrastructure.numbering.document_number import DocumentNumberAuthority

TEST_DB_NAME = "export_certificates_test_db"


class AsyncMongomockCursor:
    def __init__(self, cursor):
        self._cursor = cursor

    def sort(self, keys):
        self._cursor = self._cursor.sort(keys)
        return self

    def skip(self, count):
        self._cursor = self._cursor.skip(count)
        return self

    def limit(self, count):
        self._cursor = self._cursor.limit(count)
        return self

    async def to_list(self, length=None):
        documents = list(self._cursor)
        return documents[:length] if length else documents


class AsyncMongomockCollection:
    """Exposes the Motor coroutine API on top of a mongomock collection."""

    def __init__(self, collection):
        self._collection = collection

    @property
    def name(self):
        return self._collection.name

    async def find_one(self, query, projection=None):
        return self._collection.find_one(query, projection)

    def find(self, query, projection=None):
        return AsyncMongomockCursor(self._collection.find(query, projection))

    async def find_one_and_update(self, query, update, projection=None, upsert=False, return_document=ReturnDocument.BEFORE):
        return self._collection.find_one_and_update(
            query, update, projection=projection, upsert=upsert, return_document=return_document
        )

    async def insert_one(self, document):
        return self._collection.insert_one(document)

    async def find_one_and_delete(self, query, projection=None):
        return self._collection.find_one_and_delete(query, projection=projection)

    async def count_documents(self, query, **kwargs):
        return self._collection.count_documents(query, **kwargs)


class AsyncMongomockDatabase:
    def __init__(self, db):
        self._db = db

    def __getitem__(self, name):
        return AsyncMongomockCollection(self._db[name])


class InMemoryCacheClient:
    """Stands in for redis.asyncio.Redis: bytes in, bytes out, no expiry."""

    def __init__(self):
        self.data = {}

    async def get(self, name):
        return self.data.get(name)

    async def set(self, name, value):
        self.data[name] = value.encode() if isinstance(value, str) else value
        return True

    async def delete(self, *names):
        deleted = 0
        for name in names:
            if self.data.pop(name, None) is not None:
                deleted += 1
        return deleted


@pytest.fixture
def mongo_db():
    client = MongoMockClient()
    db = client[TEST_DB_NAME]
    yield db
    client.close()


@pytest.fixture
def async_db(mongo_db):
    return AsyncMongomockDatabase(mongo_db)


@pytest.fixture
def cache_client():
    return InMemoryCacheClient()


@pytest.fixture
def catch_certs(mongo_db):
    """The raw (synchronous) collection, for arranging and asserting state."""
    return mongo_db[Journey.CATCH_CERTIFICATE.collection_name]


@pytest.fixture
def document_store(async_db):
    return MongoDocumentStore(async_db[Journey.CATCH_CERTIFICATE.collection_name])


@pytest.fixture
def document_service(document_store, cache_client):
    return DocumentService(
        Journey.CATCH_CERTIFICATE,
        document_store,
        DraftCache(cache_client),
        DocumentNumberAuthority(document_store),
        maximum_concurrent_drafts=50,
    )


@pytest.fixture
def owner():
    return Owner(user_principal="principal-1", contact_id="contact-1")


@pytest.fixture
def other_owner():
    return Owner(user_principal="principal-2", contact_id="contact-2")
