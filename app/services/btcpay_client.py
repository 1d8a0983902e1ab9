import os

import requests

from services.exceptions import PaymentGatewayError

TIMEOUT = 15


def _store_url():
    host = os.getenv("BTCPAY_HOST", "").rstrip("/")
    store_id = os.getenv("BTCPAY_STORE_ID", "")
    return f"{host}/api/v1/stores/{store_id}/invoices"


def _headers():
    return {"Authorization": f"token {os.getenv('BTCPAY_API_KEY', '')}"}


def _check(response):
    if response.status_code >= 400:
        try:
            msg_error = response.json().get("message", response.text)
        except ValueError:
            msg_error = response.text
        raise PaymentGatewayError(response.status_code, msg_error)
    return response.json()


def create_invoice(amount, metadata, redirect_url):
    invoice = {
        "storeId": os.getenv("BTCPAY_STORE_ID", ""),
        "currency": "USD",
        "amount": amount,
        "checkout": {
            "redirectURL": redirect_url,
            "defaultPaymentMethod": "BTC",
        },
        "metadata": metadata,
    }
    try:
        response = requests.post(_store_url(), json=invoice, headers=_headers(), timeout=TIMEOUT)
    except requests.RequestException as e:
        raise PaymentGatewayError(502, str(e))
    return _check(response)


def get_invoice(invoice_id):
    try:
        response = requests.get(f"{_store_url()}/{invoice_id}", headers=_headers(), timeout=TIMEOUT)
    except requests.RequestException as e:
        raise PaymentGatewayError(502, str(e))
    return _check(response)
