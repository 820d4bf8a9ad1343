"""Исключения сервиса платежей

Каждое исключение знает HTTP статус, с которым его отдаёт web слой.
"""
from typing import Optional


class PaymentServiceError(Exception):
    """Базовая ошибка сервиса"""
    
    status = 500
    
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PaymentServiceError):
    """Некорректные данные запроса клиента"""
    
    status = 400


class AuthError(PaymentServiceError):
    """Не удалось получить access token у Daraja"""


class UpstreamAuthError(AuthError):
    """Ошибка авторизации, прервавшая инициацию платежа"""


class UpstreamError(PaymentServiceError):
    """Сетевая или HTTP ошибка при обращении к Daraja"""


class PaymentRejected(PaymentServiceError):
    """Daraja отклонила STK Push запрос"""
    
    status = 400
    
    def __init__(self, description: str, code: Optional[str] = None):
        super().__init__(description)
        self.code = code
        self.description = description


class MalformedCallback(PaymentServiceError):
    """Callback без ожидаемой структуры Body.stkCallback"""
    
    status = 400
