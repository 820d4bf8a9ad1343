"""Сверка STK callback от Daraja с PENDING транзакциями"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

import asyncpg

from paybridge.constants import TERMINAL_STATUSES
from paybridge.db.repositories.organizations import OrganizationRepository
from paybridge.db.repositories.transactions import TransactionRepository
from paybridge.errors import MalformedCallback
from paybridge.models.transaction import CallbackOutcome
from paybridge.services.subscriptions import SubscriptionService
from paybridge.utils.callback_metadata import extract_outcome

logger = logging.getLogger(__name__)


class ReconcileResult(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    DUPLICATE = "duplicate"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class CallbackAck:
    """Ответ отправителю callback"""
    status: int
    message: str


class CallbackReconciler:
    """
    Применяет результат оплаты к транзакции и подписке организации
    
    Обновление транзакции и организации выполняется в одной транзакции БД
    под блокировкой строки транзакции. Повторный callback по записи в
    терминальном статусе ничего не меняет.
    """
    
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool
    
    @staticmethod
    def validate(payload: Any) -> dict:
        """
        Проверяет структуру Body.stkCallback
        
        Raises:
            MalformedCallback: если структура не соответствует ожидаемой
        """
        if not isinstance(payload, dict):
            raise MalformedCallback("Callback должен быть JSON объектом")
        body = payload.get("Body")
        stk_callback = body.get("stkCallback") if isinstance(body, dict) else None
        if not isinstance(stk_callback, dict):
            raise MalformedCallback("В callback отсутствует Body.stkCallback")
        checkout_request_id = stk_callback.get("CheckoutRequestID")
        if not checkout_request_id or not isinstance(checkout_request_id, str):
            raise MalformedCallback("В callback отсутствует CheckoutRequestID")
        try:
            int(stk_callback.get("ResultCode"))
        except (TypeError, ValueError):
            raise MalformedCallback("В callback отсутствует корректный ResultCode")
        metadata = stk_callback.get("CallbackMetadata")
        if metadata is not None:
            if not isinstance(metadata, dict):
                raise MalformedCallback("CallbackMetadata должен быть объектом")
            items = metadata.get("Item")
            if items is not None and not isinstance(items, list):
                raise MalformedCallback("CallbackMetadata.Item должен быть списком")
        return stk_callback
    
    async def reconcile(self, payload: Any) -> CallbackAck:
        """
        Обрабатывает callback и формирует ответ Daraja
        
        Внутренние ошибки логируются и не отдаются наружу: Daraja всегда
        получает 200, кроме callback с некорректной структурой.
        """
        try:
            stk_callback = self.validate(payload)
        except MalformedCallback as e:
            logger.error(f"Некорректный callback: {e.message}")
            return CallbackAck(status=MalformedCallback.status, message=e.message)
        
        checkout_request_id = stk_callback["CheckoutRequestID"]
        logger.info(
            f"Получен callback от Daraja: CheckoutRequestID={checkout_request_id}, "
            f"ResultCode={stk_callback.get('ResultCode')}"
        )
        
        try:
            outcome = extract_outcome(stk_callback)
            result = await self.apply_outcome(checkout_request_id, outcome)
        except Exception as e:
            logger.error(f"Ошибка обработки callback {checkout_request_id}: {e!r}")
            return CallbackAck(status=200, message="Callback received successfully.")
        
        logger.info(f"💰 Callback {checkout_request_id} обработан: {result.value}")
        return CallbackAck(status=200, message="Callback received successfully.")
    
    async def apply_outcome(
        self,
        checkout_request_id: str,
        outcome: CallbackOutcome,
        now: Optional[datetime] = None
    ) -> ReconcileResult:
        """
        Переводит PENDING транзакцию в COMPLETED или FAILED
        
        При успехе перезаписывает период подписки организации.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                transactions = TransactionRepository(conn)
                record = await transactions.get_for_update(checkout_request_id)
                
                if not record:
                    logger.warning(f"⚠️ Транзакция {checkout_request_id} не найдена в БД")
                    return ReconcileResult.NOT_FOUND
                
                if record['status'] in TERMINAL_STATUSES:
                    logger.warning(
                        f"⚠️ Транзакция {checkout_request_id} уже в статусе {record['status']}, повтор пропущен"
                    )
                    return ReconcileResult.DUPLICATE
                
                if not outcome.is_success:
                    await transactions.mark_failed(checkout_request_id, outcome)
                    logger.info(
                        f"❌ Оплата {checkout_request_id} не прошла: "
                        f"{outcome.result_code} {outcome.result_desc}"
                    )
                    return ReconcileResult.FAILED
                
                await transactions.mark_completed(checkout_request_id, outcome)
                await SubscriptionService.activate(
                    OrganizationRepository(conn), record, outcome, now
                )
                return ReconcileResult.COMPLETED
