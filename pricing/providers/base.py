"""
Quote Provider Base Class

Every carrier integration (rate table, SOAP, REST) sits behind this one
capability. The pricing core only tells a cost apart from "no quote";
carrier-specific error detail stays inside the adapter.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from ..models import AccountRecord, ShipmentRequest


class QuoteProvider(ABC):
    """
    Attributes:
        name - Short label used in logs and skip reasons
    """

    name: str = "provider"

    @abstractmethod
    def quote(self, account: AccountRecord, shipment: ShipmentRequest) -> float | None:
        """
        Cost for shipping `shipment` on `account`.

        Returns None when the carrier has no rate. May block on I/O and may
        raise; batch callers turn exceptions into skipped shipments.
        """


class CallableProvider(QuoteProvider):
    """Adapter for a plain function with the quote signature."""

    def __init__(
        self,
        func: Callable[[AccountRecord, ShipmentRequest], float | None],
        name: str | None = None,
    ):
        self._func = func
        self.name = name or getattr(func, "__name__", "callable")

    def quote(self, account: AccountRecord, shipment: ShipmentRequest) -> float | None:
        return self._func(account, shipment)
