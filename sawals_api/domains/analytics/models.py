import enum
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sawals_api.core.db import Base, BigIntId


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InteractionType(str, enum.Enum):
    LIKE = "like"
    SUPER_LIKE = "super_like"
    DISLIKE = "dislike"


class QuestionInteraction(Base):
    __tablename__ = "question_interactions"
    __table_args__ = (
        UniqueConstraint("user_id", "question_id", "interaction_type", name="uq_interaction_user_question_type"),
    )

    interaction_id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id", ondelete="CASCADE"), index=True)
    question_id: Mapped[int] = mapped_column(ForeignKey("questions.question_id", ondelete="CASCADE"), index=True)
    interaction_type: Mapped[InteractionType] = mapped_column(
        Enum(InteractionType, values_callable=lambda e: [m.value for m in e], name="interaction_type")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    def to_public_dict(self) -> dict:
        return {
            "interaction_id": self.interaction_id,
            "user_id": self.user_id,
            "question_id": self.question_id,
            "interaction_type": self.interaction_type.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class QuestionAnalyticsSummary(Base):
    __tablename__ = "question_analytics_summary"

    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.question_id", ondelete="CASCADE"),
        primary_key=True,
    )
    likes: Mapped[int] = mapped_column(Integer, default=0)
    super_likes: Mapped[int] = mapped_column(Integer, default=0)
    dislikes: Mapped[int] = mapped_column(Integer, default=0)
    total_interactions: Mapped[int] = mapped_column(Integer, default=0)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_public_dict(self) -> dict:
        return {
            "total_likes": self.likes,
            "total_super_likes": self.super_likes,
            "total_dislikes": self.dislikes,
            "total_interactions": self.total_interactions,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


class UserAnalyticsSummary(Base):
    __tablename__ = "user_analytics_summary"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    likes_given: Mapped[int] = mapped_column(Integer, default=0)
    super_likes_given: Mapped[int] = mapped_column(Integer, default=0)
    dislikes_given: Mapped[int] = mapped_column(Integer, default=0)
    interactions_given: Mapped[int] = mapped_column(Integer, default=0)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_public_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "total_likes_given": self.likes_given,
            "total_super_likes_given": self.super_likes_given,
            "total_dislikes_given": self.dislikes_given,
            "total_interactions_given": self.interactions_given,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }
