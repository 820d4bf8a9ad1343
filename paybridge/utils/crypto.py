import base64
from datetime import datetime
from typing import Optional

from paybridge.constants import DARAJA_TIMESTAMP_FORMAT, NAIROBI_TZ


def generate_timestamp(now: Optional[datetime] = None) -> str:
    """
    Формирует Timestamp для Daraja в формате YYYYMMDDHHMMSS
    
    Args:
        now: Момент времени (по умолчанию - текущее время в Найроби)
    
    Returns:
        Строка из 14 цифр
    """
    if now is None:
        now = datetime.now(NAIROBI_TZ)
    return now.strftime(DARAJA_TIMESTAMP_FORMAT)


def generate_stk_password(shortcode: str, passkey: str, timestamp: str) -> str:
    """
    Формирует Password для STK Push
    
    Это не подпись, а требуемая Daraja кодировка:
        base64(BusinessShortCode + Passkey + Timestamp)
    
    Пересчитывается на каждый запрос, так как содержит Timestamp.
    
    Args:
        shortcode: Business Shortcode
        passkey: Lipa na M-Pesa Online Passkey
        timestamp: Timestamp запроса (YYYYMMDDHHMMSS)
    
    Returns:
        Base64 строка
    """
    raw = f"{shortcode}{passkey}{timestamp}"
    return base64.b64encode(raw.encode('utf-8')).decode('ascii')


def basic_auth_header(consumer_key: str, consumer_secret: str) -> str:
    """Формирует заголовок Authorization для обмена ключей на токен"""
    credentials = f"{consumer_key}:{consumer_secret}".encode('utf-8')
    return "Basic " + base64.b64encode(credentials).decode('ascii')
