from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from paybridge.constants import SUBSCRIPTION_DURATIONS, DEFAULT_SUBSCRIPTION_DURATION
from paybridge.db.repositories.organizations import OrganizationRepository
from paybridge.models.organization import SubscriptionWindow
from paybridge.models.transaction import CallbackOutcome, TransactionRecord

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Сервис для управления подписками организаций"""
    
    @staticmethod
    def duration_for(subscription_type: str) -> timedelta:
        """Длительность подписки; неизвестный тип -> 30 дней с предупреждением"""
        duration = SUBSCRIPTION_DURATIONS.get(subscription_type)
        if duration is None:
            logger.warning(
                f"⚠️ Неизвестный тип подписки '{subscription_type}', используется {DEFAULT_SUBSCRIPTION_DURATION.days} дней"
            )
            return DEFAULT_SUBSCRIPTION_DURATION
        return duration
    
    @staticmethod
    def compute_window(subscription_type: str, now: Optional[datetime] = None) -> SubscriptionWindow:
        """Новый период подписки: от now на длительность типа"""
        start = now or datetime.now(timezone.utc)
        return {
            'start': start,
            'end': start + SubscriptionService.duration_for(subscription_type)
        }
    
    @staticmethod
    async def activate(
        organizations: OrganizationRepository,
        record: TransactionRecord,
        outcome: CallbackOutcome,
        now: Optional[datetime] = None
    ) -> Optional[SubscriptionWindow]:
        """
        Активирует подписку организации по оплаченной транзакции
        
        Период перезаписывается от текущего момента, а не продлевается
        от прежней даты окончания.
        
        Returns:
            Новый период или None, если организация не найдена
        """
        window = SubscriptionService.compute_window(record['subscription_type'], now)
        amount = outcome.amount if outcome.amount is not None else record['amount']
        
        updated = await organizations.apply_subscription(
            organization_id=record['organization_id'],
            package_name=record['package_name'],
            subscription_type=record['subscription_type'],
            start=window['start'],
            end=window['end'],
            amount=amount,
            payment_id=outcome.receipt_number or record['checkout_request_id']
        )
        
        if not updated:
            logger.warning(f"⚠️ Организация {record['organization_id']} не найдена, подписка не обновлена")
            return None
        
        logger.info(
            f"✅ Подписка активирована: organization_id={record['organization_id']}, "
            f"package={record['package_name']}, до {window['end']}"
        )
        return window
