import pytest
from unittest.mock import AsyncMock, MagicMock

from export_certificate_service.app.service.exceptions import InvalidOwnershipContextError
from export_certificate_service.app.service.ownership import (
    Owner,
    construct_owner_query,
    apply_owned_update,
    document_owner_ids,
    owner_filter,
)


def test_construct_owner_query_with_principal_and_contact():
    assert construct_owner_query("Bob", "contact-1") == [
        {"createdBy": "Bob"},
        {"contactId": "contact-1"},
        {"exportData.exporterDetails.contactId": "contact-1"},
    ]


def test_construct_owner_query_with_contact_only():
    assert construct_owner_query(None, "contact-1") == [
        {"contactId": "contact-1"},
        {"exportData.exporterDetails.contactId": "contact-1"},
    ]


def test_construct_owner_query_with_principal_only():
    assert construct_owner_query("Bob", None) == [{"createdBy": "Bob"}]


@pytest.mark.parametrize("user_principal, contact_id", [(None, None), ("", ""), (None, "")])
def test_construct_owner_query_without_identifiers_raises(user_principal, contact_id):
    with pytest.raises(InvalidOwnershipContextError, match="UserPrincipal and ContactId are both undefined"):
        construct_owner_query(user_principal, contact_id)


def test_owner_filter_merges_conditions():
    query = owner_filter(Owner(user_principal="Bob"), documentNumber="GBR-2024-CC-123456789", status={"$in": ["DRAFT"]})

    assert query == {
        "$or": [{"createdBy": "Bob"}],
        "documentNumber": "GBR-2024-CC-123456789",
        "status": {"$in": ["DRAFT"]},
    }


def test_cache_identity_prefers_contact_id():
    assert Owner(user_principal="Bob", contact_id="contact-1").cache_identity == "contact-1"
    assert Owner(user_principal="Bob").cache_identity == "Bob"


def test_cache_identity_without_identifiers_raises():
    with pytest.raises(InvalidOwnershipContextError):
        Owner().cache_identity


def test_document_owner_ids_reads_all_three_locations():
    document = {
        "createdBy": "Bob",
        "contactId": "contact-1",
        "exportData": {"exporterDetails": {"contactId": "exporter-9"}},
    }

    assert document_owner_ids(document) == ["Bob", "contact-1", "exporter-9"]


def test_document_owner_ids_skips_missing_and_repeated_ids():
    assert document_owner_ids({"contactId": "contact-1", "exportData": {"exporterDetails": {"contactId": "contact-1"}}}) == ["contact-1"]
    assert document_owner_ids({"exportData": None}) == []
    assert document_owner_ids(None) == []


@pytest.mark.asyncio
async def test_apply_owned_update_without_a_match_skips_the_follow_up_read():
    store = MagicMock()
    store.find_one_and_update = AsyncMock(return_value=None)
    store.find_one = AsyncMock()

    assert await apply_owned_update(store, {"documentNumber": "A"}, {"$set": {"userReference": "x"}}, "A") == (None, [])
    store.find_one.assert_not_awaited()
