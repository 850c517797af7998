import datetime

import pytest
from unittest.mock import AsyncMock, MagicMock

from export_certificate_service.app.models.document_status import DocumentStatus
from export_certificate_service.app.models.journey import Journey
from export_certificate_service.app.service.exceptions import InvalidStatusTransitionError
from export_certificate_service.app.service.ownership import OWNER_IDS_PROJECTION, Owner
from export_certificate_service.app.service.status_machine import StatusStateMachine

DOCUMENT_NUMBER = "GBR-2024-CC-3F9A0B12C"
OWNER_CLAUSES = [
    {"createdBy": "Bob"},
    {"contactId": "contact-1"},
    {"exportData.exporterDetails.contactId": "contact-1"},
]
STORED_OWNERS = {"createdBy": "Bob", "contactId": "contact-1", "exportData": {"exporterDetails": {"contactId": "exporter-9"}}}


@pytest.fixture
def mock_store():
    store = MagicMock()
    store.find_one_and_update = AsyncMock(return_value=STORED_OWNERS)
    store.find_one = AsyncMock(return_value=STORED_OWNERS)
    return store


@pytest.fixture
def mock_cache():
    cache = MagicMock()
    cache.invalidate = AsyncMock()
    return cache


@pytest.fixture
def machine(mock_store, mock_cache):
    return StatusStateMachine(Journey.CATCH_CERTIFICATE, mock_store, mock_cache)


@pytest.fixture
def owner():
    return Owner(user_principal="Bob", contact_id="contact-1")


@pytest.mark.asyncio
async def test_set_status_is_a_single_conditional_update(machine, mock_store, mock_cache, owner):
    assert await machine.set_status(owner, DOCUMENT_NUMBER, DocumentStatus.PENDING) is True

    mock_store.find_one_and_update.assert_awaited_once_with(
        {"$or": OWNER_CLAUSES, "documentNumber": DOCUMENT_NUMBER, "status": {"$in": ["DRAFT", "LOCKED"]}},
        {"$set": {"status": "PENDING"}},
        OWNER_IDS_PROJECTION,
    )
    mock_cache.invalidate.assert_awaited_once_with(
        owner,
        DOCUMENT_NUMBER,
        "catchCertificate/draftHeaders",
        co_owner_ids=["Bob", "contact-1", "exporter-9"],
    )


@pytest.mark.asyncio
async def test_set_status_also_clears_owners_added_by_the_write(machine, mock_store, mock_cache, owner):
    mock_store.find_one_and_update.return_value = {"createdBy": "Bob"}
    mock_store.find_one.return_value = {"createdBy": "Bob", "contactId": "contact-5"}

    await machine.set_status(owner, DOCUMENT_NUMBER, DocumentStatus.PENDING)

    mock_store.find_one.assert_awaited_once_with({"documentNumber": DOCUMENT_NUMBER}, OWNER_IDS_PROJECTION)
    assert mock_cache.invalidate.call_args.kwargs["co_owner_ids"] == ["Bob", "contact-5"]


@pytest.mark.asyncio
async def test_set_status_to_a_terminal_status_starts_from_any_mutable_status(machine, mock_store, owner):
    await machine.set_status(owner, DOCUMENT_NUMBER, DocumentStatus.BLOCKED)

    query = mock_store.find_one_and_update.call_args.args[0]
    assert query["status"] == {"$in": ["DRAFT", "PENDING", "LOCKED"]}


@pytest.mark.asyncio
async def test_set_status_already_at_target_reports_success(machine, mock_store, mock_cache, owner, mocker):
    dropped = mocker.patch("export_certificate_service.app.service.status_machine.dropped_writes_counter")
    mock_store.find_one_and_update.return_value = None
    mock_store.find_one.return_value = {"status": "PENDING"}

    assert await machine.set_status(owner, DOCUMENT_NUMBER, "PENDING") is True

    mock_store.find_one.assert_awaited_once_with(
        {"$or": OWNER_CLAUSES, "documentNumber": DOCUMENT_NUMBER}, {"status": 1}
    )
    dropped.add.assert_called_once()
    mock_cache.invalidate.assert_awaited_once_with(
        owner, DOCUMENT_NUMBER, "catchCertificate/draftHeaders", co_owner_ids=[]
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("stored", [None, {"status": "COMPLETE"}])
async def test_set_status_on_a_missing_or_terminal_document_is_a_no_op(machine, mock_store, owner, stored):
    mock_store.find_one_and_update.return_value = None
    mock_store.find_one.return_value = stored

    assert await machine.set_status(owner, DOCUMENT_NUMBER, "PENDING") is False


@pytest.mark.asyncio
async def test_set_status_refuses_complete(machine, mock_store, owner):
    with pytest.raises(InvalidStatusTransitionError):
        await machine.set_status(owner, DOCUMENT_NUMBER, DocumentStatus.COMPLETE)

    mock_store.find_one_and_update.assert_not_awaited()


@pytest.mark.asyncio
async def test_set_status_does_not_invalidate_when_the_store_fails(machine, mock_store, mock_cache, owner):
    mock_store.find_one_and_update.side_effect = ConnectionError("Mongo unavailable")

    with pytest.raises(ConnectionError):
        await machine.set_status(owner, DOCUMENT_NUMBER, DocumentStatus.PENDING)

    mock_cache.invalidate.assert_not_awaited()


@pytest.mark.asyncio
async def test_complete_stamps_fields_and_invalidates_the_current_month(machine, mock_store, mock_cache, owner):
    assert await machine.complete(owner, DOCUMENT_NUMBER, "uri/doc.pdf", "a@b.com") is True

    query, update, _ = mock_store.find_one_and_update.call_args.args
    assert query == {"$or": OWNER_CLAUSES, "documentNumber": DOCUMENT_NUMBER, "status": {"$in": ["DRAFT", "PENDING"]}}
    stamped = update["$set"]
    assert stamped["status"] == "COMPLETE"
    assert stamped["documentUri"] == "uri/doc.pdf"
    assert stamped["createdByEmail"] == "a@b.com"
    assert stamped["createdAt"].tzinfo is not None

    created_at = stamped["createdAt"]
    mock_cache.invalidate.assert_awaited_once_with(
        owner,
        DOCUMENT_NUMBER,
        "catchCertificate/draftHeaders",
        f"catchCertificate/completedHeaders/{created_at.month}-{created_at.year}",
        co_owner_ids=["Bob", "contact-1", "exporter-9"],
    )


@pytest.mark.asyncio
async def test_complete_of_a_completed_document_confirms_without_writing(machine, mock_store, owner):
    mock_store.find_one_and_update.return_value = None
    mock_store.find_one.return_value = {"status": "COMPLETE"}

    assert await machine.complete(owner, DOCUMENT_NUMBER, "uri", "a@b.com") is True


@pytest.mark.asyncio
async def test_complete_without_a_match_is_a_no_op(machine, mock_store, owner):
    mock_store.find_one_and_update.return_value = None
    mock_store.find_one.return_value = None

    assert await machine.complete(owner, DOCUMENT_NUMBER, "uri", "a@b.com") is False


@pytest.mark.asyncio
async def test_void_moves_complete_to_void_and_invalidates_its_month(machine, mock_store, mock_cache, owner):
    mock_store.find_one_and_update.return_value = {"createdBy": "Bob", "createdAt": datetime.datetime(2024, 3, 15, 10, 0)}
    mock_store.find_one.return_value = {"createdBy": "Bob"}

    assert await machine.void(owner, DOCUMENT_NUMBER) is True

    query, update, projection = mock_store.find_one_and_update.call_args.args
    assert query == {"$or": OWNER_CLAUSES, "documentNumber": DOCUMENT_NUMBER, "status": "COMPLETE"}
    assert update == {"$set": {"status": "VOID"}}
    assert projection["createdAt"] == 1
    mock_cache.invalidate.assert_awaited_once_with(
        owner,
        DOCUMENT_NUMBER,
        "catchCertificate/draftHeaders",
        "catchCertificate/completedHeaders/3-2024",
        co_owner_ids=["Bob"],
    )


@pytest.mark.asyncio
async def test_void_of_a_missing_or_foreign_document(machine, mock_store, mock_cache, owner):
    mock_store.find_one_and_update.return_value = None

    assert await machine.void(owner, DOCUMENT_NUMBER) is False
    mock_cache.invalidate.assert_not_awaited()
