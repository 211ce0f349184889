# payment capture behind a pluggable gateway
from __future__ import annotations

import abc
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Optional

from timberline.db.models import PaymentMethod
from timberline.db.store import new_id
from timberline.utils.config import Settings
from timberline.utils.errors import PaymentError
from timberline.utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass(frozen=True)
class PaymentRequest:
    amount: Decimal
    currency: str
    method: PaymentMethod
    user_id: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    reference: Optional[str] = None
    message: str = ""


class PaymentGateway(abc.ABC):
    name = "abstract"

    @abc.abstractmethod
    async def capture(self, request: PaymentRequest) -> PaymentResult:
        """Charge the customer; a declined charge returns ``success=False``."""

    async def charge(self, request: PaymentRequest) -> PaymentResult:
        """capture() that raises PaymentError unless the charge went through."""
        if request.amount <= 0:
            raise PaymentError("Nothing to pay for.")
        result = await self.capture(request)
        if not result.success:
            _logger.warning(
                f"{self.name} declined {request.amount} {request.currency}: {result.message}"
            )
            raise PaymentError()
        _logger.info(f"{self.name} captured {request.amount} {request.currency} ({result.reference})")
        return result

    async def void(self, result: PaymentResult) -> None:
        """Reverse a captured charge whose order could not be saved."""
        _logger.error(f"{self.name} cannot void {result.reference}; refund it by hand")


class ManualPaymentGateway(PaymentGateway):
    """Records the order for manual invoicing; every capture succeeds."""

    name = "manual"

    async def capture(self, request: PaymentRequest) -> PaymentResult:
        return PaymentResult(success=True, reference=f"manual-{new_id()[:12]}")

    async def void(self, result: PaymentResult) -> None:
        _logger.info(f"Voided {result.reference}")


class DecliningPaymentGateway(PaymentGateway):
    """Refuses every charge. Used to rehearse the failure path."""

    name = "declining"

    async def capture(self, request: PaymentRequest) -> PaymentResult:
        return PaymentResult(success=False, message="Payment declined.")


GATEWAYS: Dict[str, Callable[[], PaymentGateway]] = {
    ManualPaymentGateway.name: ManualPaymentGateway,
    DecliningPaymentGateway.name: DecliningPaymentGateway,
}


def gateway_for(settings: Settings) -> PaymentGateway:
    try:
        factory = GATEWAYS[settings.payment_provider]
    except KeyError:
        raise PaymentError(
            f"Payment provider '{settings.payment_provider}' is not available."
        ) from None
    return factory()
