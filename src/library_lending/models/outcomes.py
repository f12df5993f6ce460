"""
Outcomes of the lending operations that can fail without raising.

Fee payment and renewal report a rejected request as a value instead of an
exception. The status enum tells callers which case they got; ``message``
renders the text clients display, whose ``Payment failed`` /
``Renewal failed`` prefixes are part of the public contract.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

PAYMENT_FAILED_PREFIX = "Payment failed"
RENEWAL_FAILED_PREFIX = "Renewal failed"


class PaymentStatus(str, Enum):
    SETTLED = "settled"
    MISMATCH = "mismatch"


class RenewalStatus(str, Enum):
    RENEWED = "renewed"
    ALREADY_RENEWED = "already_renewed"


class PaymentOutcome(BaseModel):
    """Result of a fee payment attempt."""

    status: PaymentStatus
    outstanding: Decimal = Field(
        ...,
        description="Balance after the attempt: zero when settled, unchanged on mismatch",
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def settled(cls) -> "PaymentOutcome":
        return cls(status=PaymentStatus.SETTLED, outstanding=Decimal("0.00"))

    @classmethod
    def mismatch(cls, outstanding: Decimal) -> "PaymentOutcome":
        return cls(status=PaymentStatus.MISMATCH, outstanding=outstanding)

    @property
    def succeeded(self) -> bool:
        return self.status == PaymentStatus.SETTLED

    @property
    def message(self) -> str:
        if self.succeeded:
            return "Payment processed successfully. Outstanding fees have been cleared."
        return (
            f"{PAYMENT_FAILED_PREFIX}: Payment amount does not match the outstanding fees. "
            f"Outstanding Fees: {self.outstanding}"
        )


class RenewalOutcome(BaseModel):
    """Result of a renewal attempt."""

    status: RenewalStatus
    new_due_date: datetime | None = Field(
        None,
        description="Due date after renewing; None when the loan was already renewed",
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def renewed(cls, new_due_date: datetime) -> "RenewalOutcome":
        return cls(status=RenewalStatus.RENEWED, new_due_date=new_due_date)

    @classmethod
    def already_renewed(cls) -> "RenewalOutcome":
        return cls(status=RenewalStatus.ALREADY_RENEWED)

    @property
    def succeeded(self) -> bool:
        return self.status == RenewalStatus.RENEWED

    @property
    def message(self) -> str:
        if self.succeeded:
            return f"Book renewed successfully. New due date: {self.new_due_date:%Y-%m-%d}"
        return f"{RENEWAL_FAILED_PREFIX}: Book has already been renewed."
