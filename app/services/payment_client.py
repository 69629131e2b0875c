"""Payment gateway client.

The booking core only needs one capability from the gateway: initiate a
charge for an amount against a reference and learn whether it succeeded.
With ``PAYMENT_MOCK`` enabled the gateway is simulated and always approves.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    success: bool
    transaction_id: Optional[str] = None
    message: Optional[str] = None


class PaymentClient:
    """Client for the external payment gateway."""

    def __init__(self):
        """Initialize the payment client."""
        self.gateway_url = settings.PAYMENT_GATEWAY_URL
        self.timeout = settings.PAYMENT_TIMEOUT_SECONDS
        self.max_retries = settings.MAX_RETRIES
        self.mock = settings.PAYMENT_MOCK
        self.transport: Optional[httpx.AsyncBaseTransport] = None

    async def _make_request(self, json_data: Dict[str, Any]) -> Any:
        """
        POST to the gateway with retry logic.

        Only failures to connect are retried. Once the request may have
        reached the gateway it is never sent again, so a charge cannot be
        submitted twice.

        Raises:
            httpx.HTTPError: If the request fails
            ValueError: If the gateway answers with a body that is not JSON
        """
        async with httpx.AsyncClient(transport=self.transport) as client:
            for attempt in range(self.max_retries):
                try:
                    logger.info(
                        f"Initiating payment at {self.gateway_url} "
                        f"(attempt {attempt + 1}/{self.max_retries})"
                    )
                    response = await client.post(
                        self.gateway_url,
                        json=json_data,
                        timeout=self.timeout,
                    )
                    response.raise_for_status()
                    return response.json()

                except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                    logger.warning(
                        f"Could not reach payment gateway (attempt {attempt + 1}/{self.max_retries}): {e}"
                    )
                    if attempt == self.max_retries - 1:
                        raise

                    # Exponential backoff
                    await asyncio.sleep(2 ** attempt)

            raise httpx.HTTPError("Max retries exceeded")

    async def initiate(self, amount: Decimal, reference_id: str) -> PaymentResult:
        """
        Initiate a payment.

        Args:
            amount: Amount to charge
            reference_id: Booking id or other reference for reconciliation

        Returns:
            PaymentResult; transport errors and unreadable gateway answers
            come back as ``success=False`` rather than raising
        """
        if self.mock:
            transaction_id = f"mock_{int(time.time() * 1000)}_{reference_id}"
            logger.info(f"Mock payment of {amount} for {reference_id}: {transaction_id}")
            return PaymentResult(
                success=True,
                transaction_id=transaction_id,
                message="Payment processed successfully (mock)",
            )

        try:
            data = await self._make_request(
                {"amount": str(amount), "reference_id": str(reference_id)}
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Payment for {reference_id} failed: {e}")
            return PaymentResult(success=False, message=str(e))

        if not isinstance(data, dict):
            logger.error(f"Payment for {reference_id}: unexpected gateway response {data!r}")
            return PaymentResult(success=False, message="Unexpected payment gateway response")

        result = PaymentResult(
            success=bool(data.get("success")),
            transaction_id=data.get("transaction_id"),
            message=data.get("message"),
        )
        logger.info(f"Payment for {reference_id}: success={result.success}")
        return result


# Singleton instance
payment_client = PaymentClient()
