import os
import logging
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

from paybridge.constants import DARAJA_BASE_URLS

# Загружаем переменные из .env файла (для локального запуска)
load_dotenv()


class Config(BaseModel):
    """Конфигурация сервиса с валидацией"""
    
    # Daraja (M-Pesa) настройки
    consumer_key: str = Field(..., description="Daraja Consumer Key")
    consumer_secret: str = Field(..., description="Daraja Consumer Secret")
    shortcode: str = Field(..., description="Business Shortcode (PayBill / Till)")
    passkey: str = Field(..., description="Lipa na M-Pesa Online Passkey")
    callback_url: str = Field(..., description="Публичный URL для STK callback")
    environment: str = Field(default="sandbox", description="sandbox | production")
    transaction_type: str = Field(default="CustomerPayBillOnline", description="Тип транзакции STK")
    
    database_url: str = Field(..., description="PostgreSQL connection URL")
    port: int = Field(default=3000, description="Порт HTTP сервера")
    
    token_refresh_buffer_seconds: int = Field(default=300, description="Запас до истечения токена")
    http_timeout_seconds: float = Field(default=30, description="Таймаут запросов к Daraja")
    pending_sweep_interval_seconds: int = Field(default=300, description="Интервал проверки зависших платежей")
    pending_sweep_age_seconds: int = Field(default=600, description="Возраст PENDING записи для проверки")
    
    log_level: str = Field(default="INFO", description="Logging level")
    
    @field_validator('environment')
    @classmethod
    def check_environment(cls, v: str) -> str:
        """Проверяет, что окружение Daraja известно"""
        v = v.lower()
        if v not in DARAJA_BASE_URLS:
            raise ValueError(f"MPESA_ENVIRONMENT должен быть sandbox или production, получено: {v}")
        return v
    
    @field_validator('callback_url')
    @classmethod
    def check_callback_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("MPESA_CALLBACK_URL должен быть http(s) URL")
        return v
    
    @field_validator(
        'port',
        'token_refresh_buffer_seconds',
        'http_timeout_seconds',
        'pending_sweep_interval_seconds',
        'pending_sweep_age_seconds',
    )
    @classmethod
    def check_positive(cls, v):
        if v <= 0:
            raise ValueError("значение должно быть положительным")
        return v
    
    @property
    def base_url(self) -> str:
        """Базовый URL Daraja для текущего окружения"""
        return DARAJA_BASE_URLS[self.environment]
    
    @classmethod
    def from_env(cls) -> "Config":
        """Создает конфиг из переменных окружения с валидацией"""
        required = {
            "consumer_key": "MPESA_CONSUMER_KEY",
            "consumer_secret": "MPESA_CONSUMER_SECRET",
            "shortcode": "MPESA_SHORTCODE",
            "passkey": "MPESA_PASSKEY",
            "callback_url": "MPESA_CALLBACK_URL",
            "database_url": "DATABASE_URL",
        }
        
        values = {}
        for field_name, env_name in required.items():
            value = os.getenv(env_name)
            if not value:
                raise ValueError(f"{env_name} не установлен")
            values[field_name] = value
        
        optional = {
            "environment": "MPESA_ENVIRONMENT",
            "transaction_type": "MPESA_TRANSACTION_TYPE",
            "port": "PORT",
            "token_refresh_buffer_seconds": "TOKEN_REFRESH_BUFFER_SECONDS",
            "http_timeout_seconds": "HTTP_TIMEOUT_SECONDS",
            "pending_sweep_interval_seconds": "PENDING_SWEEP_INTERVAL_SECONDS",
            "pending_sweep_age_seconds": "PENDING_SWEEP_AGE_SECONDS",
            "log_level": "LOG_LEVEL",
        }
        for field_name, env_name in optional.items():
            value = os.getenv(env_name)
            if value:
                values[field_name] = value
        
        return cls(**values)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Настраивает логирование для приложения"""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger("paybridge")
