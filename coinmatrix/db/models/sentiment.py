from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from coinmatrix.db.base import Base


class CoinSentiment(Base):
    __tablename__ = "coin_sentiment"
    __table_args__ = (
        UniqueConstraint("user_id", "coin_id"),
        CheckConstraint("vote IN (-1, 1)", name="ck_coin_sentiment_vote"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    coin_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    vote: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
