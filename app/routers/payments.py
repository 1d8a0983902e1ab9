import logging

from database import get_db
from dependencies import get_current_user
from fastapi import APIRouter, Depends, HTTPException, Query, status
from models.user_model import User
from schemas.payment_schema import (PlanRequest, PlanResponse, CryptoPaymentLink, PaymentStatusResponse,
                                    PaypalOrderResponse, PaypalCaptureRequest)
from services import payments
from services.exceptions import NotFound, PaymentGatewayError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

router = APIRouter()

STATUS_MESSAGES = {
    "completed": "Payment verified, storage added!",
    "failed": "Payment failed.",
    "pending": "Payment still pending or failed.",
}


def _status_response(payment_status):
    return {"message": STATUS_MESSAGES.get(payment_status, STATUS_MESSAGES["pending"]), "status": payment_status}


def _gateway_error(provider, error):
    logger.error("%s error: %s", provider, error)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Error contacting {provider}")


@router.get("/plans", response_model=list[PlanResponse], summary="Available storage plans")
def list_plans():
    return [{"name": name, "price": plan["price"], "download_limit": plan["download_limit"]}
            for name, plan in payments.STORAGE_PLANS.items()]


@router.post("/crypto-payment", response_model=CryptoPaymentLink,
             summary="Create a BTCPay invoice for a storage plan",
             responses={
                 400: {"description": "Invalid storage plan"},
                 502: {"description": "Error contacting BTCPay"},
             })
def create_crypto_payment(request: PlanRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        link = payments.start_crypto_payment(db, user, request.plan)
    except payments.UnknownPlan as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PaymentGatewayError as e:
        raise _gateway_error("BTCPay", e)
    return {"link": link}


@router.get("/crypto-verify", response_model=PaymentStatusResponse,
            summary="Check a BTCPay invoice and credit the plan once it is settled",
            responses={
                404: {"description": "Payment not found"},
                502: {"description": "Error contacting BTCPay"},
            })
def verify_crypto_payment(payment_id: str = Query(..., alias="paymentId"),
                          user: User = Depends(get_current_user),
                          db: Session = Depends(get_db)):
    try:
        payment_status = payments.verify_crypto_payment(db, user, payment_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PaymentGatewayError as e:
        raise _gateway_error("BTCPay", e)
    return _status_response(payment_status)


@router.post("/paypal/create-order", response_model=PaypalOrderResponse,
             summary="Create a PayPal order for a storage plan",
             responses={
                 400: {"description": "Invalid storage plan"},
                 502: {"description": "Error contacting PayPal"},
             })
def create_paypal_order(request: PlanRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        order = payments.start_paypal_order(db, user, request.plan)
    except payments.UnknownPlan as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PaymentGatewayError as e:
        raise _gateway_error("PayPal", e)
    return {"order_id": order["id"], "approve_url": order.get("approve_url")}


@router.post("/paypal/capture", response_model=PaymentStatusResponse,
             summary="Capture an approved PayPal order and credit the plan",
             responses={
                 404: {"description": "Payment not found"},
                 502: {"description": "Error contacting PayPal"},
             })
def capture_paypal_order(request: PaypalCaptureRequest, user: User = Depends(get_current_user),
                         db: Session = Depends(get_db)):
    try:
        payment_status = payments.capture_paypal_order(db, user, request.order_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PaymentGatewayError as e:
        raise _gateway_error("PayPal", e)
    return _status_response(payment_status)
