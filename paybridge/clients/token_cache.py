"""
Кэш access token для Daraja.

Хранит один токен и момент его истечения. Обновление выполняется под
asyncio.Lock: при одновременном промахе кэша все ожидающие получают
токен из одного запроса к Daraja.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TokenFetcher = Callable[[], Awaitable[tuple[str, int]]]


class TokenCache:
    """Кэш одного bearer токена с обновлением до истечения"""
    
    def __init__(
        self,
        fetch: TokenFetcher,
        refresh_buffer_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic
    ):
        self._fetch = fetch
        self._refresh_buffer = refresh_buffer_seconds
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        self._lock = asyncio.Lock()
    
    def _is_fresh(self) -> bool:
        return (
            self._token is not None
            and self._clock() < self._expires_at - self._refresh_buffer
        )
    
    async def get_token(self) -> str:
        """
        Возвращает действующий токен
        
        Если до истечения кэшированного токена больше refresh_buffer -
        отдаёт его без сетевого запроса, иначе получает новый.
        
        Raises:
            AuthError: если обмен ключей на токен не удался
        """
        if self._is_fresh():
            return self._token  # type: ignore[return-value]
        
        async with self._lock:
            # Пока ждали блокировку, токен мог обновить другой запрос
            if self._is_fresh():
                return self._token  # type: ignore[return-value]
            
            token, expires_in = await self._fetch()
            self._token = token
            self._expires_at = self._clock() + expires_in
            logger.info(f"🔑 Получен новый access token (действует {expires_in} сек)")
            return token
