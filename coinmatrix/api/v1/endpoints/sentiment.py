from fastapi import APIRouter, status
from sqlalchemy import case, func, select

from coinmatrix.core.dependencies import DBDependency
from coinmatrix.core.responses import send_created, send_success
from coinmatrix.core.security import CurrentUser
from coinmatrix.db.models.sentiment import CoinSentiment
from coinmatrix.db.schemas.market import SentimentSummary, VoteCreate, VoteResponse
from coinmatrix.db.session import dialect_insert

router = APIRouter(tags=["Sentiment"])


@router.get("/sentiment/{coin_id}")
async def get_sentiment(coin_id: str, db: DBDependency):
    """Bullish/bearish vote totals for a coin. Public."""
    result = await db.execute(
        select(
            func.coalesce(
                func.sum(case((CoinSentiment.vote == 1, 1), else_=0)), 0
            ).label("bullish"),
            func.coalesce(
                func.sum(case((CoinSentiment.vote == -1, 1), else_=0)), 0
            ).label("bearish"),
        ).where(CoinSentiment.coin_id == coin_id)
    )
    row = result.one()
    return send_success(
        data=SentimentSummary(bullish=row.bullish, bearish=row.bearish)
    )


@router.get("/my-vote/{coin_id}")
async def get_my_vote(coin_id: str, current_user: CurrentUser, db: DBDependency):
    result = await db.execute(
        select(CoinSentiment.vote).where(
            CoinSentiment.user_id == current_user.id,
            CoinSentiment.coin_id == coin_id,
        )
    )
    return send_success(data=VoteResponse(vote=result.scalar_one_or_none()))


@router.post("/sentiment", status_code=status.HTTP_201_CREATED)
async def cast_vote(payload: VoteCreate, current_user: CurrentUser, db: DBDependency):
    stmt = dialect_insert(db, CoinSentiment).values(
        user_id=current_user.id, coin_id=payload.coin_id, vote=payload.vote
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "coin_id"],
        set_={"vote": stmt.excluded.vote, "created_at": func.now()},
    )
    await db.execute(stmt)
    await db.commit()
    return send_created(message="Vote recorded successfully")
