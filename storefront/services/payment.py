"""Payment authorization.

No payment network is contacted. The simulated gateway stands where a real
processor integration would plug in.
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from uuid import uuid4

from storefront.schemas.checkout import CardDetails
from storefront.schemas.order import PaymentMethod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentAuthorization:
    reference: str
    captured: bool


class PaymentGateway(Protocol):
    async def authorize(
        self,
        amount: Decimal,
        method: PaymentMethod,
        card: CardDetails | None,
    ) -> PaymentAuthorization: ...


class SimulatedPaymentGateway:
    """Waits a fixed delay and approves. Card payments count as captured."""

    def __init__(self, delay_seconds: float = 2.0) -> None:
        self.delay_seconds = delay_seconds

    async def authorize(
        self,
        amount: Decimal,
        method: PaymentMethod,
        card: CardDetails | None,
    ) -> PaymentAuthorization:
        await asyncio.sleep(self.delay_seconds)
        reference = f"sim_{uuid4().hex[:16]}"
        logger.info("Simulated %s authorization %s for %s", method.value, reference, amount)
        return PaymentAuthorization(reference=reference, captured=method == PaymentMethod.CARD)
