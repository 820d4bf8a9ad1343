"""Модель входящего запроса на оплату"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class PaymentRequest(BaseModel):
    """Тело POST /payments"""
    
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)
    
    phone: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0, description="Сумма в KES, целое число")
    organization_id: str = Field(..., alias="organizationId", min_length=1)
    package_name: str = Field(..., alias="packageName", min_length=1)
    subscription_type: str = Field(..., alias="subscriptionType", min_length=1)
    account_reference: Optional[str] = Field(default=None, alias="accountReference")
    transaction_desc: Optional[str] = Field(default=None, alias="transactionDesc")
    
    @field_validator('phone', 'organization_id', mode='before')
    @classmethod
    def parse_numeric_id(cls, v):
        """Клиенты Daraja часто присылают номер и ID числом: 254708374149"""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v
    
    @field_validator('amount', mode='before')
    @classmethod
    def reject_bool_amount(cls, v):
        if isinstance(v, bool):
            raise ValueError("сумма должна быть числом")
        return v
