import json

import httpx
import pytest

from game.reprieve.payments import (
    HttpPaymentVerifier,
    MockPaymentVerifier,
    PaymentProvider,
    create_payment_verifier,
)

VERIFY_ARGS = {"run_id": "run-1", "user_id": "0xabc", "reference": "0xtx", "amount_usd": 1.0}


def _verifier(handler) -> HttpPaymentVerifier:
    return HttpPaymentVerifier("https://payments.test/api/", transport=httpx.MockTransport(handler))


class TestMockPaymentVerifier:
    async def test_accepts_reference(self):
        result = await MockPaymentVerifier().verify_payment(**VERIFY_ARGS)
        assert result.verified
        assert result.reference == "0xtx"

    async def test_rejects_empty_reference(self):
        result = await MockPaymentVerifier().verify_payment(**{**VERIFY_ARGS, "reference": ""})
        assert not result.verified

    async def test_reject_mode(self):
        result = await MockPaymentVerifier(accept=False).verify_payment(**VERIFY_ARGS)
        assert result.error == "payment not found"


class TestHttpPaymentVerifier:
    async def test_posts_camel_case_payload(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"verified": True})

        result = await _verifier(handler).verify_payment(**VERIFY_ARGS)

        assert result.verified
        assert str(seen[0].url) == "https://payments.test/api/verify"
        assert json.loads(seen[0].content) == {
            "runId": "run-1",
            "userId": "0xabc",
            "reference": "0xtx",
            "amountUsd": 1.0,
        }

    async def test_unverified_answer(self):
        result = await _verifier(lambda request: httpx.Response(200, json={"verified": False})).verify_payment(
            **VERIFY_ARGS
        )
        assert not result.verified
        assert result.error == "payment not verified"

    async def test_truthy_non_boolean_is_not_verified(self):
        result = await _verifier(lambda request: httpx.Response(200, json={"verified": "yes"})).verify_payment(
            **VERIFY_ARGS
        )
        assert not result.verified

    async def test_error_status(self):
        result = await _verifier(lambda request: httpx.Response(503)).verify_payment(**VERIFY_ARGS)
        assert not result.verified

    async def test_invalid_json(self):
        result = await _verifier(lambda request: httpx.Response(200, content=b"oops")).verify_payment(**VERIFY_ARGS)
        assert not result.verified

    async def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        result = await _verifier(handler).verify_payment(**VERIFY_ARGS)
        assert result.error == "payment service unreachable"


class TestPaymentVerifierRegistry:
    def test_mock(self):
        assert isinstance(create_payment_verifier(PaymentProvider.MOCK), MockPaymentVerifier)

    def test_http(self):
        assert isinstance(create_payment_verifier(PaymentProvider.HTTP, "https://p.test"), HttpPaymentVerifier)

    def test_http_requires_url(self):
        with pytest.raises(ValueError, match="payment_verify_url"):
            create_payment_verifier(PaymentProvider.HTTP)
