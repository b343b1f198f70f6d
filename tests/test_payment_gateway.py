import json

import httpx
import pytest
from tenacity import wait_none

from src.portal.utils.exceptions import PaymentGatewayException
from src.portal.utils.payment_gateway import RazorpayGateway

from tests.conftest import KEY_SECRET, WEBHOOK_SECRET, sign_payment, sign_webhook


def _gateway(handler) -> RazorpayGateway:
    return RazorpayGateway(
        key_id="rzp_test_key",
        key_secret=KEY_SECRET,
        webhook_secret=WEBHOOK_SECRET,
        base_url="https://api.razorpay.test/v1/",
        transport=httpx.MockTransport(handler),
    )


async def test_create_order_posts_minor_units():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "id": "order_abc", "amount": 59900, "currency": "INR", "receipt": "receipt_1", "status": "created",
        })

    order = await _gateway(handler).create_order(59900, "INR", "receipt_1", {"applicationId": "1"})

    assert order.id == "order_abc"
    assert order.amount == 59900
    assert seen["url"] == "https://api.razorpay.test/v1/orders"
    assert seen["auth"].startswith("Basic ")
    assert seen["body"] == {
        "amount": 59900, "currency": "INR", "receipt": "receipt_1", "notes": {"applicationId": "1"},
    }


async def test_rejected_order_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"error": {"description": "amount too small"}})

    with pytest.raises(PaymentGatewayException) as excinfo:
        await _gateway(handler).create_order(50, "INR", "receipt_2")
    assert excinfo.value.details == {"gateway_status": 400}
    assert len(calls) == 1


async def test_transport_errors_are_retried(monkeypatch):
    monkeypatch.setattr(RazorpayGateway._post_order.retry, "wait", wait_none())
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PaymentGatewayException):
        await _gateway(handler).create_order(59900, "INR", "receipt_3")
    assert len(calls) == 3


async def test_unconfigured_gateway():
    gateway = RazorpayGateway(key_id="", key_secret="")
    with pytest.raises(PaymentGatewayException):
        await gateway.create_order(100, "INR", "receipt_4")


def test_payment_signature():
    gateway = _gateway(lambda request: httpx.Response(500))
    signature = sign_payment("order_1", "pay_1")
    assert gateway.verify_payment_signature("order_1", "pay_1", signature)
    assert not gateway.verify_payment_signature("order_1", "pay_2", signature)
    assert not gateway.verify_payment_signature("order_1", "pay_1", "")


def test_webhook_signature_uses_raw_bytes():
    gateway = _gateway(lambda request: httpx.Response(500))
    body = b'{"event": "payment.captured"}'
    assert gateway.verify_webhook_signature(body, sign_webhook(body))
    # Re-serialized JSON no longer matches
    assert not gateway.verify_webhook_signature(b'{"event":"payment.captured"}', sign_webhook(body))
    assert not RazorpayGateway(webhook_secret="").verify_webhook_signature(body, sign_webhook(body))
