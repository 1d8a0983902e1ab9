import os

import requests

from services.exceptions import PaymentGatewayError

TIMEOUT = 15


def _api_base():
    return os.getenv("PAYPAL_API_BASE", "https://api-m.sandbox.paypal.com").rstrip("/")


def _check(response):
    if response.status_code >= 400:
        try:
            body = response.json()
            msg_error = body.get("message") or body.get("error_description") or response.text
        except ValueError:
            msg_error = response.text
        raise PaymentGatewayError(response.status_code, msg_error)
    return response.json()


def _access_token():
    try:
        response = requests.post(
            f"{_api_base()}/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(os.getenv("PAYPAL_CLIENT_ID", ""), os.getenv("PAYPAL_CLIENT_SECRET", "")),
            timeout=TIMEOUT,
        )
    except requests.RequestException as e:
        raise PaymentGatewayError(502, str(e))
    return _check(response)["access_token"]


def _post(path, payload=None):
    headers = {"Authorization": f"Bearer {_access_token()}", "Content-Type": "application/json"}
    try:
        response = requests.post(f"{_api_base()}{path}", json=payload or {}, headers=headers, timeout=TIMEOUT)
    except requests.RequestException as e:
        raise PaymentGatewayError(502, str(e))
    return _check(response)


def create_order(amount, plan, return_url, cancel_url):
    order = _post("/v2/checkout/orders", {
        "intent": "CAPTURE",
        "purchase_units": [{
            "reference_id": plan,
            "amount": {"currency_code": "USD", "value": f"{amount:.2f}"},
        }],
        "application_context": {"return_url": return_url, "cancel_url": cancel_url},
    })
    approve_url = next((link["href"] for link in order.get("links", []) if link.get("rel") in ("approve", "payer-action")), None)
    return {"id": order["id"], "status": order.get("status"), "approve_url": approve_url}


def capture_order(order_id):
    captured = _post(f"/v2/checkout/orders/{order_id}/capture")
    return {"id": captured.get("id", order_id), "status": captured.get("status")}
