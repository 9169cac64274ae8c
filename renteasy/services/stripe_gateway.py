"""
Thin async wrapper around the Stripe SDK.

The SDK is synchronous, so every network call runs in the threadpool. Stripe
objects are normalised into IntentSnapshot so the payment service never
depends on SDK object shapes.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from fastapi.concurrency import run_in_threadpool
from renteasy.config import settings
from renteasy.utils.exceptions import (
    BadRequestError,
    PaymentConfigurationError,
    PaymentGatewayError,
    WebhookSignatureError,
)
import json
import logging
import stripe

logger = logging.getLogger(__name__)

SUCCEEDED_STATUSES = {"succeeded"}
FAILED_STATUSES = {"requires_payment_method", "canceled"}


def _as_dict(obj: Any) -> Dict[str, Any]:
    """Plain dict view of a Stripe object, dict or None."""
    if obj is None:
        return {}
    if isinstance(obj, dict) and not hasattr(obj, "to_dict"):
        return obj
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return json.loads(str(obj))


@dataclass
class IntentSnapshot:
    """The parts of a PaymentIntent the ledger cares about."""

    id: str
    status: str
    charge_id: Optional[str] = None
    receipt_url: Optional[str] = None
    failure_message: Optional[str] = None
    client_secret: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in SUCCEEDED_STATUSES

    @property
    def failed(self) -> bool:
        return self.status in FAILED_STATUSES

    @classmethod
    def from_stripe(cls, intent: Any) -> "IntentSnapshot":
        """
        Build a snapshot from a PaymentIntent object or webhook payload.

        The charge may be an expanded object, a bare id, or the legacy
        charges list.
        """
        data = _as_dict(intent)

        charge_id = None
        receipt_url = None
        latest_charge = data.get("latest_charge")
        if isinstance(latest_charge, str):
            charge_id = latest_charge
        elif latest_charge:
            charge = _as_dict(latest_charge)
            charge_id = charge.get("id")
            receipt_url = charge.get("receipt_url")
        else:
            charges = (data.get("charges") or {}).get("data") or []
            if charges:
                charge = _as_dict(charges[0])
                charge_id = charge.get("id")
                receipt_url = charge.get("receipt_url")

        last_error = data.get("last_payment_error") or {}

        return cls(
            id=data.get("id"),
            status=data.get("status") or "",
            charge_id=charge_id,
            receipt_url=receipt_url,
            failure_message=last_error.get("message"),
            client_secret=data.get("client_secret"),
        )


class StripeGateway:
    """
    Payment provider client used by the payment service.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        webhook_tolerance: int = 300
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.webhook_tolerance = webhook_tolerance

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    def _require_key(self) -> str:
        if not self.secret_key:
            raise PaymentConfigurationError()
        return self.secret_key

    async def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: Dict[str, str]
    ) -> IntentSnapshot:
        """
        Create a PaymentIntent.

        Args:
            amount: Amount in minor currency units
            currency: ISO currency code
            metadata: Identifiers echoed back on webhooks

        Raises:
            PaymentConfigurationError: If no secret key is configured
            PaymentGatewayError: If Stripe rejects the request
        """
        api_key = self._require_key()
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.create,
                amount=amount,
                currency=currency,
                automatic_payment_methods={"enabled": True},
                metadata=metadata,
                api_key=api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe PaymentIntent create failed: {e}")
            raise PaymentGatewayError(f"Payment provider request failed: {e.user_message or 'unknown error'}")

        snapshot = IntentSnapshot.from_stripe(intent)
        logger.info(f"Created PaymentIntent {snapshot.id} for {amount} {currency}")
        return snapshot

    async def retrieve_intent(self, intent_id: str) -> IntentSnapshot:
        """Fetch the current state of a PaymentIntent with its latest charge."""
        api_key = self._require_key()
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.retrieve,
                intent_id,
                expand=["latest_charge"],
                api_key=api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe PaymentIntent retrieve failed for {intent_id}: {e}")
            raise PaymentGatewayError()

        return IntentSnapshot.from_stripe(intent)

    async def charge_receipt_url(self, charge_id: str) -> Optional[str]:
        """Receipt URL of a charge, looked up when the intent did not carry it."""
        api_key = self._require_key()
        try:
            charge = await run_in_threadpool(stripe.Charge.retrieve, charge_id, api_key=api_key)
        except stripe.StripeError as e:
            logger.error(f"Stripe Charge retrieve failed for {charge_id}: {e}")
            raise PaymentGatewayError()

        return _as_dict(charge).get("receipt_url")

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook delivery and return the event as a dict.

        Raises:
            BadRequestError: If the signature header is missing
            WebhookSignatureError: If the signature is invalid
            PaymentConfigurationError: If no webhook secret is configured
        """
        if not signature:
            raise BadRequestError("Missing Stripe signature.")
        if not self.webhook_secret:
            raise PaymentConfigurationError("Stripe webhook secret is not configured.")

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self.webhook_secret,
                tolerance=self.webhook_tolerance,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe webhook signature verification failed: {e}")
            raise WebhookSignatureError(str(e))
        except ValueError as e:
            logger.warning(f"Stripe webhook payload is not valid JSON: {e}")
            raise WebhookSignatureError("Invalid payload")

        return _as_dict(event)


def build_stripe_gateway() -> StripeGateway:
    """Gateway configured from application settings."""
    return StripeGateway(
        secret_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        webhook_tolerance=settings.stripe_webhook_tolerance,
    )
