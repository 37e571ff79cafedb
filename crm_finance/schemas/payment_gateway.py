"""Payment gateway schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from crm_finance.models.payment import GatewayAccountType


class PaymentGatewayCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    account_type: GatewayAccountType = GatewayAccountType.PERSONAL
    account_number: str = Field(..., min_length=1, max_length=100)
    instructions: Optional[str] = Field(default=None, max_length=5000)
    is_active: bool = True
    auto_approve: bool = Field(default=False, description="Approve payments on submission")


class PaymentGatewayUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    account_type: Optional[GatewayAccountType] = None
    account_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    instructions: Optional[str] = Field(default=None, max_length=5000)
    is_active: Optional[bool] = None
    auto_approve: Optional[bool] = None


class PaymentGatewayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    name: str
    account_type: GatewayAccountType
    account_number: str
    instructions: Optional[str] = None
    is_active: bool
    auto_approve: bool
    created_at: datetime
    updated_at: datetime
