"""Клиент для работы с Daraja API (M-Pesa)"""
import asyncio
import logging
from typing import Any, Optional

import aiohttp

from paybridge.clients.token_cache import TokenCache
from paybridge.config import Config
from paybridge.constants import (
    DARAJA_AUTH_PATH,
    DARAJA_STK_PUSH_PATH,
    DARAJA_STK_QUERY_PATH,
)
from paybridge.errors import AuthError, UpstreamError
from paybridge.utils.crypto import basic_auth_header, generate_stk_password, generate_timestamp

logger = logging.getLogger(__name__)


class DarajaClient:
    """Клиент для STK Push запросов к Daraja"""
    
    def __init__(self, config: Config, session: aiohttp.ClientSession):
        self.config = config
        self.session = session
        self.base_url = config.base_url
        self.token_cache = TokenCache(
            self.fetch_access_token,
            refresh_buffer_seconds=config.token_refresh_buffer_seconds
        )
    
    async def fetch_access_token(self) -> tuple[str, int]:
        """
        Обменивает consumer key/secret на access token
        
        Returns:
            (token, expires_in) - токен и время жизни в секундах
        
        Raises:
            AuthError: при сетевой ошибке или неуспешном статусе
        """
        url = f"{self.base_url}{DARAJA_AUTH_PATH}"
        headers = {
            "Authorization": basic_auth_header(self.config.consumer_key, self.config.consumer_secret)
        }
        
        try:
            async with self.session.get(
                url,
                params={"grant_type": "client_credentials"},
                headers=headers
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    logger.error(f"Daraja OAuth вернул {response.status}: {body[:200]}")
                    raise AuthError(f"Daraja OAuth вернул статус {response.status}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Ошибка запроса access token: {e}")
            raise AuthError(f"Не удалось получить access token: {e}") from e
        
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthError("Daraja OAuth не вернул access_token")
        
        try:
            expires_in = int(data.get("expires_in", 3599))
        except (TypeError, ValueError):
            expires_in = 3599
        
        return token, expires_in
    
    async def stk_push(
        self,
        phone: str,
        amount: int,
        account_reference: str,
        transaction_desc: str
    ) -> dict[str, Any]:
        """
        Отправляет STK Push (Lipa na M-Pesa Online)
        
        Args:
            phone: Номер плательщика (2547XXXXXXXX)
            amount: Сумма в KES
            account_reference: Референс, который видит плательщик
            transaction_desc: Описание платежа
        
        Returns:
            Ответ Daraja (MerchantRequestID, CheckoutRequestID, ResponseCode, ...)
        
        Raises:
            AuthError: если не удалось получить токен
            UpstreamError: при сетевой или HTTP ошибке
        """
        timestamp = generate_timestamp()
        payload = {
            "BusinessShortCode": self.config.shortcode,
            "Password": generate_stk_password(self.config.shortcode, self.config.passkey, timestamp),
            "Timestamp": timestamp,
            "TransactionType": self.config.transaction_type,
            "Amount": amount,
            "PartyA": phone,
            "PartyB": self.config.shortcode,
            "PhoneNumber": phone,
            "CallBackURL": self.config.callback_url,
            "AccountReference": account_reference,
            "TransactionDesc": transaction_desc,
        }
        return await self._post(DARAJA_STK_PUSH_PATH, payload)
    
    async def query_stk_status(self, checkout_request_id: str) -> dict[str, Any]:
        """Запрашивает статус STK Push по CheckoutRequestID"""
        timestamp = generate_timestamp()
        payload = {
            "BusinessShortCode": self.config.shortcode,
            "Password": generate_stk_password(self.config.shortcode, self.config.passkey, timestamp),
            "Timestamp": timestamp,
            "CheckoutRequestID": checkout_request_id,
        }
        return await self._post(DARAJA_STK_QUERY_PATH, payload)
    
    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Авторизованный POST к Daraja"""
        token = await self.token_cache.get_token()
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {token}"}
        
        try:
            async with self.session.post(url, json=payload, headers=headers) as response:
                data = await self._read_json(response)
                if response.status >= 400:
                    message = data.get("errorMessage") or f"HTTP {response.status}"
                    logger.error(f"Daraja {path} вернул {response.status}: {data}")
                    raise UpstreamError(message)
                return data
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Ошибка запроса к Daraja {path}: {e!r}")
            raise UpstreamError(f"Daraja недоступна: {e!r}") from e
    
    @staticmethod
    async def _read_json(response: aiohttp.ClientResponse) -> dict[str, Any]:
        try:
            data: Optional[Any] = await response.json(content_type=None)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            return {"raw": await response.text()}
        return data
