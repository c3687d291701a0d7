"""Per-user credit accounting."""

from repobook.credits.ledger import (
    CreditCheck,
    CreditLedger,
    CreditStatus,
    CreditType,
)
from repobook.utils.clock import hours_until_reset

__all__ = [
    "CreditCheck",
    "CreditLedger",
    "CreditStatus",
    "CreditType",
    "hours_until_reset",
]
