"""
Shared pytest fixtures for the payment service test suite.

Repositories are replaced with in-memory fakes that follow the same
status rules as the SQL ones, and the asyncpg pool with a fake that
hands out connections with a no-op transaction() context.
"""

import copy
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from paybridge.config import Config
from paybridge.constants import STATUS_COMPLETED, STATUS_FAILED, STATUS_PENDING


# ============================================================================
# In-memory store
# ============================================================================


class InMemoryStore:
    """Two tables keyed like the real ones."""

    def __init__(self):
        self.transactions: dict[str, dict] = {}
        self.organizations: dict[str, dict] = {}

    def add_organization(self, organization_id: str, **fields) -> dict:
        org = {
            "organization_id": organization_id,
            "name": fields.get("name", organization_id),
            "active_package": None,
            "subscription_start": None,
            "subscription_end": None,
            "subscription_type": None,
            "last_payment_amount": None,
            "last_payment_id": None,
            "payment_confirmed": False,
            "updated_at": datetime.now(timezone.utc),
        }
        org.update(fields)
        self.organizations[organization_id] = org
        return org

    def add_pending(self, checkout_request_id: str, **fields) -> dict:
        now = datetime.now(timezone.utc)
        record = {
            "checkout_request_id": checkout_request_id,
            "merchant_request_id": "29115-34620561-1",
            "organization_id": "org-1",
            "amount": Decimal("100"),
            "phone": "254708374149",
            "package_name": "Pro",
            "subscription_type": "Monthly",
            "status": STATUS_PENDING,
            "initiation_response": None,
            "callback_metadata": None,
            "mpesa_receipt_number": None,
            "paid_amount": None,
            "transaction_date": None,
            "payer_phone": None,
            "result_code": None,
            "result_desc": None,
            "last_checked_at": None,
            "created_at": now,
            "updated_at": now,
        }
        record.update(fields)
        self.transactions[checkout_request_id] = record
        return record


class FakeTransactionRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def create_pending(self, checkout_request_id, merchant_request_id, organization_id,
                             amount, phone, package_name, subscription_type, initiation_response):
        if checkout_request_id in self.store.transactions:
            raise RuntimeError(f"duplicate key {checkout_request_id}")
        self.store.add_pending(
            checkout_request_id,
            merchant_request_id=merchant_request_id,
            organization_id=organization_id,
            amount=amount,
            phone=phone,
            package_name=package_name,
            subscription_type=subscription_type,
            initiation_response=initiation_response,
        )

    async def get(self, checkout_request_id) -> Optional[dict]:
        record = self.store.transactions.get(checkout_request_id)
        return copy.deepcopy(record) if record else None

    async def get_for_update(self, checkout_request_id) -> Optional[dict]:
        return await self.get(checkout_request_id)

    async def mark_completed(self, checkout_request_id, outcome) -> bool:
        record = self.store.transactions.get(checkout_request_id)
        if not record or record["status"] != STATUS_PENDING:
            return False
        record.update(
            status=STATUS_COMPLETED,
            mpesa_receipt_number=outcome.receipt_number,
            paid_amount=outcome.amount,
            transaction_date=outcome.transaction_date,
            payer_phone=outcome.phone_number,
            result_code=outcome.result_code,
            result_desc=outcome.result_desc,
            callback_metadata=outcome.raw_metadata,
            updated_at=datetime.now(timezone.utc),
        )
        return True

    async def mark_failed(self, checkout_request_id, outcome) -> bool:
        record = self.store.transactions.get(checkout_request_id)
        if not record or record["status"] != STATUS_PENDING:
            return False
        record.update(
            status=STATUS_FAILED,
            result_code=outcome.result_code,
            result_desc=outcome.result_desc,
            updated_at=datetime.now(timezone.utc),
        )
        return True

    async def list_stale_pending(self, older_than, limit=50) -> list[dict]:
        rows = [
            copy.deepcopy(r) for r in self.store.transactions.values()
            if r["status"] == STATUS_PENDING and r["created_at"] < older_than
        ]
        rows.sort(key=lambda r: (r["last_checked_at"] is not None, r["last_checked_at"] or r["created_at"], r["created_at"]))
        return rows[:limit]

    async def mark_checked(self, checkout_request_id) -> None:
        record = self.store.transactions.get(checkout_request_id)
        if record and record["status"] == STATUS_PENDING:
            record["last_checked_at"] = datetime.now(timezone.utc)


class FakeOrganizationRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def apply_subscription(self, organization_id, package_name, subscription_type,
                                 start, end, amount, payment_id) -> bool:
        org = self.store.organizations.get(organization_id)
        if not org:
            return False
        org.update(
            active_package=package_name,
            subscription_type=subscription_type,
            subscription_start=start,
            subscription_end=end,
            last_payment_amount=amount,
            last_payment_id=payment_id,
            payment_confirmed=True,
            updated_at=datetime.now(timezone.utc),
        )
        return True


class FakeConnection:
    def __init__(self):
        self.transactions_opened = 0

    @asynccontextmanager
    async def transaction(self):
        self.transactions_opened += 1
        yield


class FakePool:
    """Stands in for asyncpg.Pool; set ``fail`` to simulate an outage."""

    def __init__(self):
        self.connection = FakeConnection()
        self.fail = False

    @asynccontextmanager
    async def acquire(self):
        if self.fail:
            raise ConnectionError("database unavailable")
        yield self.connection


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_pool():
    return FakePool()


@pytest.fixture
def fake_repositories(monkeypatch, store):
    """Route every repository constructor in the services to the in-memory store."""
    def transactions(db):
        return FakeTransactionRepository(store)

    def organizations(db):
        return FakeOrganizationRepository(store)

    monkeypatch.setattr("paybridge.services.reconciliation.TransactionRepository", transactions)
    monkeypatch.setattr("paybridge.services.reconciliation.OrganizationRepository", organizations)
    monkeypatch.setattr("paybridge.services.payments.TransactionRepository", transactions)
    return store


@pytest.fixture
def config():
    return Config(
        consumer_key="consumer-key",
        consumer_secret="consumer-secret",
        shortcode="174379",
        passkey="passkey",
        callback_url="https://example.com/payments/callback",
        database_url="postgresql://localhost/test",
    )


def make_response(status: int = 200, json_data=None, text: str = ""):
    """Mock aiohttp response usable as ``async with session.get(...)``."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_data)
    response.text = AsyncMock(return_value=text)
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=None)
    return context


def stk_callback(checkout_request_id: str = "ws_CO_191220191020363925", result_code: int = 0,
                 items: Optional[list] = None, result_desc: str = "The service request is processed successfully."):
    """Build a Daraja STK callback envelope."""
    callback = {
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": checkout_request_id,
        "ResultCode": result_code,
        "ResultDesc": result_desc,
    }
    if result_code == 0:
        callback["CallbackMetadata"] = {
            "Item": items if items is not None else [
                {"Name": "Amount", "Value": 100.0},
                {"Name": "MpesaReceiptNumber", "Value": "NLJ7RT61SV"},
                {"Name": "TransactionDate", "Value": 20191219102115},
                {"Name": "PhoneNumber", "Value": 254708374149},
            ]
        }
    return {"Body": {"stkCallback": callback}}
