"""
Payment verification for paid reprieves.

Building and broadcasting the payment happens client-side; the server only
asks a verifier whether a reported payment reference is settled. Variants
are selected by configuration through ``PAYMENT_VERIFIERS``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from http import HTTPStatus
from typing import TYPE_CHECKING, Protocol

import httpx
import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger()

_VERIFY_TIMEOUT_SECONDS = 5.0


class PaymentProvider(StrEnum):
    MOCK = "mock"
    HTTP = "http"


@dataclass(frozen=True, slots=True)
class PaymentVerification:
    verified: bool
    reference: str | None = None
    error: str | None = None


class PaymentVerifier(Protocol):
    async def verify_payment(
        self,
        *,
        run_id: str,
        user_id: str,
        reference: str,
        amount_usd: float,
    ) -> PaymentVerification: ...


class MockPaymentVerifier:
    """Accepts every non-empty reference (or none, when ``accept`` is False)."""

    def __init__(self, *, accept: bool = True) -> None:
        self._accept = accept

    async def verify_payment(
        self,
        *,
        run_id: str,  # noqa: ARG002
        user_id: str,  # noqa: ARG002
        reference: str,
        amount_usd: float,  # noqa: ARG002
    ) -> PaymentVerification:
        if self._accept and reference:
            return PaymentVerification(verified=True, reference=reference)
        return PaymentVerification(verified=False, reference=reference, error="payment not found")


class HttpPaymentVerifier:
    """Asks a payment service at ``{base_url}/verify`` whether a reference is settled.

    Transport errors and non-200 answers are reported as unverified; nothing
    is retried.
    """

    def __init__(self, base_url: str, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    async def verify_payment(
        self,
        *,
        run_id: str,
        user_id: str,
        reference: str,
        amount_usd: float,
    ) -> PaymentVerification:
        payload = {"runId": run_id, "userId": user_id, "reference": reference, "amountUsd": amount_usd}
        async with httpx.AsyncClient(timeout=_VERIFY_TIMEOUT_SECONDS, transport=self._transport) as client:
            try:
                response = await client.post(f"{self._base_url}/verify", json=payload)
            except httpx.RequestError as e:
                logger.warning("payment verification request failed", run_id=run_id, error=str(e))
                return PaymentVerification(verified=False, reference=reference, error="payment service unreachable")

        if response.status_code != HTTPStatus.OK:
            logger.warning("payment verification rejected", run_id=run_id, status=response.status_code)
            return PaymentVerification(verified=False, reference=reference, error="payment not verified")

        try:
            verified = response.json().get("verified") is True
        except ValueError:
            logger.warning("payment service returned invalid JSON", run_id=run_id)
            verified = False
        return PaymentVerification(
            verified=verified,
            reference=reference,
            error=None if verified else "payment not verified",
        )


def _build_mock(url: str | None) -> PaymentVerifier:  # noqa: ARG001
    return MockPaymentVerifier()


def _build_http(url: str | None) -> PaymentVerifier:
    if not url:
        raise ValueError("payment_verify_url is required for the http payment provider")
    return HttpPaymentVerifier(url)


PAYMENT_VERIFIERS: dict[PaymentProvider, Callable[[str | None], PaymentVerifier]] = {
    PaymentProvider.MOCK: _build_mock,
    PaymentProvider.HTTP: _build_http,
}


def create_payment_verifier(provider: PaymentProvider, url: str | None = None) -> PaymentVerifier:
    return PAYMENT_VERIFIERS[provider](url)
