from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from schemas.base import CamelModel


class PlanRequest(BaseModel):
    plan: str = Field(..., example="small", description="Storage plan name")

class PlanResponse(CamelModel):
    name: str = Field(..., example="small")
    price: float = Field(..., example=5.99, description="Price in USD")
    download_limit: float = Field(..., example=5, description="GB added to the download quota")

class CryptoPaymentLink(BaseModel):
    link: str = Field(..., description="BTCPay checkout page")

class PaymentStatusResponse(BaseModel):
    message: str
    status: str

class PaypalOrderResponse(CamelModel):
    order_id: str
    approve_url: Optional[str] = None

class PaypalCaptureRequest(CamelModel):
    order_id: str

class PaymentUser(CamelModel):
    id: int
    name: str
    email: str

class PaymentResponse(CamelModel):
    id: int
    provider: str = Field(..., example="btcpay")
    payment_id: str
    plan: str
    amount: float
    currency: str
    download_limit_added: float
    status: str = Field(..., example="completed")
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class AdminPaymentResponse(PaymentResponse):
    user: Optional[PaymentUser] = None
