"""
Credit API routes.

- GET /credits - Current credit counters of the caller
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from repobook.api.auth import AuthContext, get_current_user
from repobook.api.dependencies import get_ledger
from repobook.api.schemas import CreditStatusResponse
from repobook.credits.ledger import CreditLedger

router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("", response_model=CreditStatusResponse)
def get_credits(
    auth: AuthContext = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
) -> CreditStatusResponse:
    """Counters with due resets applied; admin counters are null (unlimited)."""
    status = ledger.get_credit_status(auth.user_id)
    ledger.session.commit()
    return CreditStatusResponse(**asdict(status))
