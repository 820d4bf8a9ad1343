"""Модели для транзакций STK Push"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, TypedDict

from paybridge.constants import STK_SUCCESS_RESULT_CODE


class TransactionRecord(TypedDict):
    """Запись транзакции из базы данных"""
    checkout_request_id: str
    merchant_request_id: Optional[str]
    organization_id: str
    amount: Decimal
    phone: str
    package_name: str
    subscription_type: str
    status: str  # PENDING, COMPLETED, FAILED
    initiation_response: Optional[str]  # JSONB
    callback_metadata: Optional[str]  # JSONB
    mpesa_receipt_number: Optional[str]
    paid_amount: Optional[Decimal]
    transaction_date: Optional[datetime]
    payer_phone: Optional[str]
    result_code: Optional[int]
    result_desc: Optional[str]
    last_checked_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class CallbackOutcome:
    """Результат оплаты, извлечённый из callback или STK query"""
    result_code: int
    result_desc: Optional[str] = None
    amount: Optional[Decimal] = None
    receipt_number: Optional[str] = None
    transaction_date: Optional[datetime] = None
    phone_number: Optional[str] = None
    raw_metadata: Optional[dict[str, Any]] = None
    
    @property
    def is_success(self) -> bool:
        return self.result_code == STK_SUCCESS_RESULT_CODE


@dataclass(frozen=True)
class InitiationResult:
    """Ответ клиенту после принятия STK Push"""
    accepted_id: str
    merchant_request_id: Optional[str]
    customer_message: Optional[str]
