import pytest

from backend.payments.metadata import extract_order_fields, parse_items, payment_identifier
from backend.utils.errors import MetadataCorruptError


def test_parse_items_missing_is_empty_list():
    assert parse_items({}) == []


def test_parse_items_invalid_json_is_corrupt():
    with pytest.raises(MetadataCorruptError):
        parse_items({"items": "[{not json"})


def test_parse_items_non_list_is_corrupt():
    with pytest.raises(MetadataCorruptError):
        parse_items({"items": '{"id": "p1"}'})


def test_parse_items_missing_chunk_is_corrupt():
    with pytest.raises(MetadataCorruptError):
        parse_items({"items_chunks": "2", "items_0": "[{"})


def test_session_and_intent_share_payment_identifier():
    session = {"object": "checkout.session", "id": "cs_1", "payment_intent": "pi_1"}
    intent = {"object": "payment_intent", "id": "pi_1"}
    assert payment_identifier(session) == payment_identifier(intent) == "pi_1"


def test_session_without_intent_falls_back_to_session_id():
    assert payment_identifier({"object": "checkout.session", "id": "cs_1", "payment_intent": None}) == "cs_1"


def test_extract_order_fields_from_session(session_event):
    obj = session_event()["data"]["object"]
    row = extract_order_fields(obj)
    assert row["payment_intent_id"] == "pi_test_123"
    assert row["stripe_session_id"] == "cs_test_1"
    assert row["total_amount"] == 90.0
    assert row["currency"] == "GBP"
    assert row["user_email"] == "jane@example.com"
    assert row["user_name"] == "Jane Doe"
    assert row["items"][0]["qty"] == 2
    assert row["is_donation"] is False


def test_extract_order_fields_zero_decimal_amount(pi_event):
    obj = pi_event("pi_ugx", amount=5000, currency="ugx")["data"]["object"]
    row = extract_order_fields(obj)
    assert row["total_amount"] == 5000.0
    assert row["currency"] == "UGX"
    assert row["stripe_session_id"] is None


ADDRESS = {
    "name": "Jane Doe",
    "address": {"line1": "1 Green Lane", "city": "London", "postal_code": "N1 1AA", "country": "GB"},
}


def test_session_shipping_details_are_kept(session_event):
    obj = session_event()["data"]["object"]
    obj["shipping_details"] = ADDRESS
    assert extract_order_fields(obj)["shipping_address"] == ADDRESS


def test_collected_information_shipping_details_are_kept(session_event):
    obj = session_event()["data"]["object"]
    obj["collected_information"] = {"shipping_details": ADDRESS}
    assert extract_order_fields(obj)["shipping_address"] == ADDRESS


def test_payment_intent_shipping_is_kept(pi_event):
    obj = pi_event()["data"]["object"]
    obj["shipping"] = ADDRESS
    assert extract_order_fields(obj)["shipping_address"] == ADDRESS


def test_missing_shipping_is_none(pi_event):
    assert extract_order_fields(pi_event()["data"]["object"])["shipping_address"] is None
