"""
Tests for the Daraja helpers.

Tests:
- STK password and timestamp encoding
- Basic auth header
- Phone normalisation
- Callback metadata extraction
"""

import base64
from datetime import datetime
from decimal import Decimal

import pytest

from paybridge.constants import NAIROBI_TZ
from paybridge.utils.callback_metadata import extract_outcome, parse_transaction_date
from paybridge.utils.crypto import basic_auth_header, generate_stk_password, generate_timestamp
from paybridge.utils.phone import normalize_phone
from tests.conftest import stk_callback


class TestStkPassword:
    """Tests for the STK Push password."""

    def test_password_is_base64_of_concatenation(self):
        password = generate_stk_password("174379", "passkey", "20240101120000")
        assert base64.b64decode(password).decode() == "174379passkey20240101120000"

    def test_password_changes_with_timestamp(self):
        first = generate_stk_password("174379", "passkey", "20240101120000")
        second = generate_stk_password("174379", "passkey", "20240101120001")
        assert first != second

    def test_timestamp_format(self):
        moment = datetime(2024, 3, 5, 7, 8, 9, tzinfo=NAIROBI_TZ)
        assert generate_timestamp(moment) == "20240305070809"

    def test_default_timestamp_is_14_digits(self):
        timestamp = generate_timestamp()
        assert len(timestamp) == 14
        assert timestamp.isdigit()

    def test_basic_auth_header(self):
        header = basic_auth_header("key", "secret")
        assert header.startswith("Basic ")
        assert base64.b64decode(header[6:]).decode() == "key:secret"


class TestNormalizePhone:
    """Tests for phone normalisation."""

    @pytest.mark.parametrize("raw", [
        "254708374149",
        "+254708374149",
        "0708374149",
        "708374149",
        "0708 374 149",
        "0708-374-149",
    ])
    def test_accepted_formats(self, raw):
        assert normalize_phone(raw) == "254708374149"

    def test_01xx_series_accepted(self):
        assert normalize_phone("0110123456") == "254110123456"
        assert normalize_phone("+254110123456") == "254110123456"

    @pytest.mark.parametrize("raw", ["0208374149", "254208374149", "0508374149"])
    def test_other_prefixes_rejected(self, raw):
        assert normalize_phone(raw) is None

    @pytest.mark.parametrize("raw", [None, "", "12345", "255708374149", "07083741490", "abc"])
    def test_invalid_numbers(self, raw):
        assert normalize_phone(raw) is None


class TestExtractOutcome:
    """Tests for one-pass CallbackMetadata extraction."""

    def test_success_fields(self):
        payload = stk_callback()["Body"]["stkCallback"]
        outcome = extract_outcome(payload)

        assert outcome.is_success
        assert outcome.amount == Decimal("100.0")
        assert outcome.receipt_number == "NLJ7RT61SV"
        assert outcome.phone_number == "254708374149"
        assert outcome.transaction_date == datetime(2019, 12, 19, 10, 21, 15, tzinfo=NAIROBI_TZ)
        assert outcome.raw_metadata == payload["CallbackMetadata"]

    def test_items_in_any_order_and_missing_fields(self):
        payload = stk_callback(items=[
            {"Name": "PhoneNumber", "Value": 254708374149},
            {"Name": "Balance"},
            {"Name": "Amount", "Value": 1},
        ])["Body"]["stkCallback"]
        outcome = extract_outcome(payload)

        assert outcome.amount == Decimal("1")
        assert outcome.phone_number == "254708374149"
        assert outcome.receipt_number is None
        assert outcome.transaction_date is None

    def test_failure_without_metadata(self):
        payload = stk_callback(result_code=1032, result_desc="Request cancelled by user")
        outcome = extract_outcome(payload["Body"]["stkCallback"])

        assert not outcome.is_success
        assert outcome.result_code == 1032
        assert outcome.result_desc == "Request cancelled by user"
        assert outcome.amount is None
        assert outcome.raw_metadata is None

    def test_items_with_non_string_names_skipped(self):
        payload = stk_callback(items=[
            {"Name": ["Amount"], "Value": 999},
            {"Name": None, "Value": 1},
            {"Name": {"x": 1}},
            {"Name": "Amount", "Value": 100},
        ])["Body"]["stkCallback"]
        outcome = extract_outcome(payload)

        assert outcome.amount == Decimal("100")

    def test_unparsable_date_is_none(self):
        assert parse_transaction_date("not-a-date") is None
        assert parse_transaction_date(None) is None
