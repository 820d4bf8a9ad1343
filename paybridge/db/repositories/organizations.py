"""Репозиторий для работы с организациями (владельцами подписок)"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

import asyncpg


class OrganizationRepository:
    """Репозиторий для работы с организациями"""
    
    def __init__(self, db: Union[asyncpg.Pool, asyncpg.Connection]):
        self.db = db
    
    async def apply_subscription(
        self,
        organization_id: str,
        package_name: str,
        subscription_type: str,
        start: datetime,
        end: datetime,
        amount: Optional[Decimal],
        payment_id: str
    ) -> bool:
        """
        Перезаписывает период подписки организации после оплаты
        
        Returns:
            True если организация существует и обновлена
        """
        result = await self.db.execute(
            """
            UPDATE organizations
            SET active_package = $2,
                subscription_type = $3,
                subscription_start = $4,
                subscription_end = $5,
                last_payment_amount = $6,
                last_payment_id = $7,
                payment_confirmed = TRUE,
                updated_at = now()
            WHERE organization_id = $1
            """,
            organization_id, package_name, subscription_type,
            start, end, amount, payment_id
        )
        return result != "UPDATE 0"
