import logging
import os
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from models.payment_model import Payment
from models.user_model import User
from services import btcpay_client, paypal_client, quota_ledger
from services.exceptions import NotFound

logger = logging.getLogger(__name__)

STORAGE_PLANS = {
    "mini-small": {"price": 0.99, "download_limit": 1},
    "small": {"price": 5.99, "download_limit": 5},
    "medium": {"price": 9.99, "download_limit": 10},
    "large": {"price": 14.99, "download_limit": 15},
    "xlarge": {"price": 24.99, "download_limit": 25},
    "xxlarge": {"price": 49.99, "download_limit": 50},
    "mega": {"price": 99.99, "download_limit": 100},
}

BTCPAY_SETTLED = "Settled"
BTCPAY_FAILED = {"Expired", "Invalid"}
PAYPAL_COMPLETED = "COMPLETED"


class UnknownPlan(ValueError):
    pass


def get_plan(plan: str) -> dict:
    if plan not in STORAGE_PLANS:
        raise UnknownPlan("Invalid storage plan")
    return STORAGE_PLANS[plan]


def frontend_url():
    return os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")


def _new_payment(db: Session, user: User, provider, payment_id, plan_name, plan) -> Payment:
    payment = Payment(
        user_id=user.id,
        provider=provider,
        payment_id=payment_id,
        plan=plan_name,
        amount=plan["price"],
        currency="USD",
        download_limit_added=plan["download_limit"],
        status="pending",
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def _owned_payment(db: Session, user: User, provider, payment_id) -> Payment:
    payment = db.query(Payment).filter(
        Payment.payment_id == payment_id,
        Payment.provider == provider,
        Payment.user_id == user.id,
    ).first()
    if not payment:
        raise NotFound("Payment not found")
    return payment


def complete_payment(db: Session, payment: Payment) -> bool:
    """Move a pending payment to completed and credit its quota.

    Returns False when the payment had already left the pending state, in
    which case nothing is credited.
    """
    updated = db.query(Payment).filter(
        Payment.id == payment.id,
        Payment.status == "pending",
    ).update({
        Payment.status: "completed",
        Payment.completed_at: datetime.now(timezone.utc),
    }, synchronize_session=False)

    if updated != 1:
        db.rollback()
        db.refresh(payment)
        return False

    quota_ledger.credit(db, payment.user_id, payment.download_limit_added)
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s (%s) completed, %.0f GB added to user %s",
                payment.payment_id, payment.provider, payment.download_limit_added, payment.user_id)
    return True


def fail_payment(db: Session, payment: Payment) -> None:
    db.query(Payment).filter(Payment.id == payment.id, Payment.status == "pending").update(
        {Payment.status: "failed"}, synchronize_session=False)
    db.commit()
    db.refresh(payment)
    logger.warning("Payment %s (%s) marked failed", payment.payment_id, payment.provider)


def start_crypto_payment(db: Session, user: User, plan_name: str) -> str:
    plan = get_plan(plan_name)
    invoice = btcpay_client.create_invoice(
        amount=plan["price"],
        metadata={"userId": user.id, "plan": plan_name, "downloadLimit": plan["download_limit"]},
        redirect_url=f"{frontend_url()}/payment-success",
    )
    _new_payment(db, user, "btcpay", invoice["id"], plan_name, plan)
    return invoice["checkoutLink"]


def verify_crypto_payment(db: Session, user: User, payment_id: str) -> str:
    payment = _owned_payment(db, user, "btcpay", payment_id)
    invoice = btcpay_client.get_invoice(payment_id)
    status = invoice.get("status")

    if status == BTCPAY_SETTLED:
        complete_payment(db, payment)
    elif status in BTCPAY_FAILED:
        fail_payment(db, payment)
    return payment.status


def start_paypal_order(db: Session, user: User, plan_name: str) -> dict:
    plan = get_plan(plan_name)
    order = paypal_client.create_order(
        amount=plan["price"],
        plan=plan_name,
        return_url=f"{frontend_url()}/payment-success",
        cancel_url=f"{frontend_url()}/payment-cancelled",
    )
    _new_payment(db, user, "paypal", order["id"], plan_name, plan)
    return order


def capture_paypal_order(db: Session, user: User, order_id: str) -> str:
    payment = _owned_payment(db, user, "paypal", order_id)
    if payment.status != "pending":
        return payment.status

    captured = paypal_client.capture_order(order_id)
    if captured.get("status") == PAYPAL_COMPLETED:
        complete_payment(db, payment)
    else:
        logger.warning("PayPal order %s capture returned status %s", order_id, captured.get("status"))
    return payment.status
