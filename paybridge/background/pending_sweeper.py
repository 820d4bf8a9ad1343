import asyncio
import logging
from datetime import datetime, timedelta, timezone

from paybridge.clients.daraja_client import DarajaClient
from paybridge.db.repositories.transactions import TransactionRepository
from paybridge.errors import PaymentServiceError
from paybridge.models.transaction import CallbackOutcome
from paybridge.services.reconciliation import CallbackReconciler

logger = logging.getLogger(__name__)


async def sweep_pending_once(
    repository: TransactionRepository,
    daraja: DarajaClient,
    reconciler: CallbackReconciler,
    max_age_seconds: int,
    batch_size: int = 50
) -> int:
    """
    Один проход по зависшим PENDING транзакциям
    
    Для каждой запрашивает статус у Daraja и применяет финальный результат
    тем же путём, что и callback. Транзакции без финального статуса
    помечаются last_checked_at и уходят в конец очереди, чтобы не
    загораживать более новые.
    
    Returns:
        Количество транзакций, получивших финальный статус
    """
    older_than = datetime.now(timezone.utc) - timedelta(seconds=max_age_seconds)
    stale = await repository.list_stale_pending(older_than, limit=batch_size)
    resolved = 0
    
    for record in stale:
        checkout_request_id = record['checkout_request_id']
        try:
            if await _sweep_record(daraja, reconciler, checkout_request_id):
                resolved += 1
            else:
                await repository.mark_checked(checkout_request_id)
        except Exception as e:
            logger.error(f"Ошибка сверки транзакции {checkout_request_id}: {e!r}")
    
    return resolved


async def _sweep_record(
    daraja: DarajaClient,
    reconciler: CallbackReconciler,
    checkout_request_id: str
) -> bool:
    """Запрашивает статус одной транзакции; True если применён финальный результат"""
    try:
        response = await daraja.query_stk_status(checkout_request_id)
    except PaymentServiceError as e:
        # Daraja отвечает ошибкой, пока плательщик не завершил операцию
        logger.info(f"Статус {checkout_request_id} пока недоступен: {e.message}")
        return False
    
    result_code = response.get("ResultCode")
    if result_code is None:
        return False
    
    try:
        outcome = CallbackOutcome(
            result_code=int(result_code),
            result_desc=response.get("ResultDesc")
        )
    except (TypeError, ValueError):
        logger.warning(f"Некорректный ResultCode в STK query {checkout_request_id}: {result_code}")
        return False
    
    result = await reconciler.apply_outcome(checkout_request_id, outcome)
    logger.info(f"🔎 Зависшая транзакция {checkout_request_id} сверена: {result.value}")
    return True


async def pending_sweeper_task(
    repository: TransactionRepository,
    daraja: DarajaClient,
    reconciler: CallbackReconciler,
    interval_seconds: int,
    max_age_seconds: int
):
    """Фоновая задача сверки транзакций, по которым не пришёл callback"""
    logger.info("🔄 Запущена фоновая задача сверки PENDING транзакций")
    
    try:
        while True:
            try:
                await asyncio.sleep(interval_seconds)
                resolved = await sweep_pending_once(repository, daraja, reconciler, max_age_seconds)
                if resolved:
                    logger.info(f"🗂️ Сверено зависших транзакций: {resolved}")
            
            except asyncio.CancelledError:
                logger.info("🛑 Задача сверки транзакций остановлена")
                raise
            
            except Exception as e:
                logger.error(f"Ошибка в задаче сверки транзакций: {e!r}")
    
    except asyncio.CancelledError:
        logger.info("✅ Задача сверки завершена")
        raise
