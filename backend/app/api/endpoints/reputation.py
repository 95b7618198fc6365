from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.reputation import ReputationEventItem, ReputationSummaryResponse, ReputationTotals
from app.services.reputation_ledger import reputation_ledger

router = APIRouter()


@router.get("/me", response_model=ReputationSummaryResponse)
async def my_reputation(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Caller's counters next to the totals replayed from the event log"""
    projection = ReputationTotals.model_validate(current_user)
    from_log = ReputationTotals.model_validate(
        await reputation_ledger.totals_from_log(db, current_user.id)
    )
    events = await reputation_ledger.recent_events(db, current_user.id)

    return ReputationSummaryResponse(
        projection=projection,
        from_log=from_log,
        consistent=projection == from_log,
        events=[ReputationEventItem.model_validate(e) for e in events],
    )
