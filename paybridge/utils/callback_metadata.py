"""Разбор CallbackMetadata из STK callback"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from paybridge.constants import DARAJA_TIMESTAMP_FORMAT, NAIROBI_TZ
from paybridge.models.transaction import CallbackOutcome

# Имя поля в Item[] -> атрибут CallbackOutcome
_ITEM_FIELDS = {
    "Amount": "amount",
    "MpesaReceiptNumber": "receipt_number",
    "TransactionDate": "transaction_date",
    "PhoneNumber": "phone_number",
}


def parse_transaction_date(value: Any) -> Optional[datetime]:
    """Парсит TransactionDate (20191219102115, время Найроби)"""
    if value is None:
        return None
    try:
        parsed = datetime.strptime(str(value), DARAJA_TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=NAIROBI_TZ)


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def extract_outcome(stk_callback: dict) -> CallbackOutcome:
    """
    Извлекает результат оплаты из stkCallback за один проход по Item[]
    
    Отсутствующие поля остаются None, ошибки не бросаются.
    """
    metadata = stk_callback.get("CallbackMetadata") or {}
    items = metadata.get("Item") or []
    
    found: dict[str, Any] = {}
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get("Name"), str):
            continue
        attr = _ITEM_FIELDS.get(item["Name"])
        if attr and attr not in found:
            found[attr] = item.get("Value")
    
    phone = found.get("phone_number")
    receipt = found.get("receipt_number")
    
    return CallbackOutcome(
        result_code=int(stk_callback.get("ResultCode", -1)),
        result_desc=stk_callback.get("ResultDesc"),
        amount=_to_decimal(found.get("amount")),
        receipt_number=str(receipt) if receipt is not None else None,
        transaction_date=parse_transaction_date(found.get("transaction_date")),
        phone_number=str(phone) if phone is not None else None,
        raw_metadata=metadata or None,
    )
