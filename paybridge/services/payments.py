"""Инициация STK Push платежей"""
import logging
from decimal import Decimal
from typing import Any, Optional

import asyncpg
from pydantic import ValidationError as PydanticValidationError

from paybridge.clients.daraja_client import DarajaClient
from paybridge.constants import DEFAULT_TRANSACTION_DESC, STK_ACCEPTED_CODE
from paybridge.db.repositories.transactions import TransactionRepository
from paybridge.errors import AuthError, PaymentRejected, UpstreamAuthError, ValidationError
from paybridge.models.payment import PaymentRequest
from paybridge.models.transaction import InitiationResult, TransactionRecord
from paybridge.utils.phone import normalize_phone

logger = logging.getLogger(__name__)


def _describe_validation_error(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"])
        parts.append(f"{field}: {item['msg']}")
    return "; ".join(parts)


class PaymentService:
    """Сервис для создания платежей через STK Push"""
    
    def __init__(self, daraja: DarajaClient, pool: asyncpg.Pool):
        self.daraja = daraja
        self.pool = pool
    
    @staticmethod
    def parse_request(body: Any) -> PaymentRequest:
        """
        Проверяет тело запроса
        
        Raises:
            ValidationError: если обязательные поля отсутствуют или некорректны
        """
        if not isinstance(body, dict):
            raise ValidationError("Тело запроса должно быть JSON объектом")
        try:
            request = PaymentRequest.model_validate(body)
        except PydanticValidationError as e:
            raise ValidationError(f"Некорректный запрос: {_describe_validation_error(e)}") from e
        
        phone = normalize_phone(request.phone)
        if not phone:
            raise ValidationError(f"Некорректный номер телефона: {request.phone}")
        return request.model_copy(update={"phone": phone})
    
    async def initiate(self, body: Any) -> InitiationResult:
        """
        Отправляет STK Push и создает PENDING транзакцию
        
        Raises:
            ValidationError: некорректный запрос (Daraja не вызывается)
            UpstreamAuthError: не удалось получить токен
            PaymentRejected: Daraja не приняла запрос
            UpstreamError: сетевая/HTTP ошибка
        """
        request = self.parse_request(body)
        
        try:
            response = await self.daraja.stk_push(
                phone=request.phone,
                amount=request.amount,
                account_reference=request.account_reference or self.daraja.config.shortcode,
                transaction_desc=request.transaction_desc or DEFAULT_TRANSACTION_DESC
            )
        except AuthError as e:
            raise UpstreamAuthError(f"Ошибка авторизации в Daraja: {e.message}") from e
        
        response_code = str(response.get("ResponseCode", ""))
        if response_code != STK_ACCEPTED_CODE:
            description = (
                response.get("ResponseDescription")
                or response.get("errorMessage")
                or "STK Push отклонён"
            )
            logger.warning(f"STK Push отклонён Daraja: code={response_code}, {description}")
            raise PaymentRejected(description, code=response_code or None)
        
        checkout_request_id = response.get("CheckoutRequestID")
        if not checkout_request_id:
            raise PaymentRejected("Daraja не вернула CheckoutRequestID", code=response_code)
        
        transactions = TransactionRepository(self.pool)
        await transactions.create_pending(
            checkout_request_id=checkout_request_id,
            merchant_request_id=response.get("MerchantRequestID"),
            organization_id=request.organization_id,
            amount=Decimal(request.amount),
            phone=request.phone,
            package_name=request.package_name,
            subscription_type=request.subscription_type,
            initiation_response=response
        )
        
        logger.info(
            f"📲 STK Push отправлен: {checkout_request_id} "
            f"(organization_id={request.organization_id}, {request.amount} KES)"
        )
        
        return InitiationResult(
            accepted_id=checkout_request_id,
            merchant_request_id=response.get("MerchantRequestID"),
            customer_message=response.get("CustomerMessage")
        )
    
    async def get_transaction(self, checkout_request_id: str) -> Optional[TransactionRecord]:
        """Получить транзакцию по CheckoutRequestID"""
        return await TransactionRepository(self.pool).get(checkout_request_id)
