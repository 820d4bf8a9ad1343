"""Репозиторий для работы с транзакциями STK Push"""
import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union

import asyncpg

from paybridge.constants import STATUS_COMPLETED, STATUS_FAILED, STATUS_PENDING
from paybridge.models.transaction import CallbackOutcome, TransactionRecord

_COLUMNS = """
    checkout_request_id, merchant_request_id, organization_id, amount, phone,
    package_name, subscription_type, status, initiation_response, callback_metadata,
    mpesa_receipt_number, paid_amount, transaction_date, payer_phone,
    result_code, result_desc, last_checked_at, created_at, updated_at
"""


class TransactionRepository:
    """
    Репозиторий для работы с транзакциями
    
    Работает как с пулом, так и с отдельным соединением внутри транзакции.
    """
    
    def __init__(self, db: Union[asyncpg.Pool, asyncpg.Connection]):
        self.db = db
    
    async def create_pending(
        self,
        checkout_request_id: str,
        merchant_request_id: Optional[str],
        organization_id: str,
        amount: Decimal,
        phone: str,
        package_name: str,
        subscription_type: str,
        initiation_response: dict[str, Any]
    ) -> None:
        """
        Создать PENDING запись после принятия STK Push
        
        Args:
            checkout_request_id: CheckoutRequestID от Daraja (первичный ключ)
            merchant_request_id: MerchantRequestID от Daraja
            organization_id: ID организации-владельца подписки
            amount: Запрошенная сумма
            phone: Номер плательщика
            package_name: Оплачиваемый пакет
            subscription_type: Monthly, Quarterly, Annually
            initiation_response: Сырой ответ Daraja
        """
        await self.db.execute(
            """
            INSERT INTO transactions (
                checkout_request_id, merchant_request_id, organization_id, amount,
                phone, package_name, subscription_type, status, initiation_response
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9::jsonb)
            """,
            checkout_request_id, merchant_request_id, organization_id, amount,
            phone, package_name, subscription_type, STATUS_PENDING,
            json.dumps(initiation_response)
        )
    
    async def get(self, checkout_request_id: str) -> Optional[TransactionRecord]:
        """Получить транзакцию по CheckoutRequestID"""
        row = await self.db.fetchrow(
            f"SELECT {_COLUMNS} FROM transactions WHERE checkout_request_id = $1",
            checkout_request_id
        )
        return dict(row) if row else None  # type: ignore
    
    async def get_for_update(self, checkout_request_id: str) -> Optional[TransactionRecord]:
        """Получить транзакцию с блокировкой строки (только внутри транзакции БД)"""
        row = await self.db.fetchrow(
            f"SELECT {_COLUMNS} FROM transactions WHERE checkout_request_id = $1 FOR UPDATE",
            checkout_request_id
        )
        return dict(row) if row else None  # type: ignore
    
    async def mark_completed(self, checkout_request_id: str, outcome: CallbackOutcome) -> bool:
        """
        Отметить транзакцию как оплаченную
        
        Returns:
            True если запись была в PENDING и обновлена
        """
        result = await self.db.execute(
            """
            UPDATE transactions
            SET status = $2,
                mpesa_receipt_number = $3,
                paid_amount = $4,
                transaction_date = $5,
                payer_phone = $6,
                result_code = $7,
                result_desc = $8,
                callback_metadata = $9::jsonb,
                updated_at = now()
            WHERE checkout_request_id = $1 AND status = $10
            """,
            checkout_request_id, STATUS_COMPLETED,
            outcome.receipt_number, outcome.amount, outcome.transaction_date,
            outcome.phone_number, outcome.result_code, outcome.result_desc,
            json.dumps(outcome.raw_metadata) if outcome.raw_metadata is not None else None,
            STATUS_PENDING
        )
        return result != "UPDATE 0"
    
    async def mark_failed(self, checkout_request_id: str, outcome: CallbackOutcome) -> bool:
        """
        Отметить транзакцию как неудавшуюся
        
        Returns:
            True если запись была в PENDING и обновлена
        """
        result = await self.db.execute(
            """
            UPDATE transactions
            SET status = $2,
                result_code = $3,
                result_desc = $4,
                updated_at = now()
            WHERE checkout_request_id = $1 AND status = $5
            """,
            checkout_request_id, STATUS_FAILED,
            outcome.result_code, outcome.result_desc,
            STATUS_PENDING
        )
        return result != "UPDATE 0"
    
    async def list_stale_pending(self, older_than: datetime, limit: int = 50) -> list[TransactionRecord]:
        """Получить PENDING транзакции, созданные раньше older_than"""
        rows = await self.db.fetch(
            f"""
            SELECT {_COLUMNS}
            FROM transactions
            WHERE status = $1 AND created_at < $2
            ORDER BY last_checked_at NULLS FIRST, created_at
            LIMIT $3
            """,
            STATUS_PENDING, older_than, limit
        )
        return [dict(row) for row in rows]  # type: ignore
    
    async def mark_checked(self, checkout_request_id: str) -> None:
        """Отметить безрезультатную проверку статуса (запись уходит в конец очереди сверки)"""
        await self.db.execute(
            """
            UPDATE transactions
            SET last_checked_at = now()
            WHERE checkout_request_id = $1 AND status = $2
            """,
            checkout_request_id, STATUS_PENDING
        )
