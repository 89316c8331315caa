"""
Question interactions and the per-question / per-user summary counters.

Summaries are recomputed from `question_interactions` inside the same
transaction as every interaction change, so counters never drift from the
rows they summarise.
"""
import logging
import math
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sawals_api.core.errors import Conflict, NotFound
from sawals_api.domains.analytics.models import (
    InteractionType,
    QuestionAnalyticsSummary,
    QuestionInteraction,
    UserAnalyticsSummary,
)
from sawals_api.domains.catalog.models import Question

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "likes": QuestionAnalyticsSummary.likes,
    "super_likes": QuestionAnalyticsSummary.super_likes,
    "dislikes": QuestionAnalyticsSummary.dislikes,
    "total_interactions": QuestionAnalyticsSummary.total_interactions,
    "total": QuestionAnalyticsSummary.total_interactions,
}

EMPTY_QUESTION_ANALYTICS = {
    "total_likes": 0,
    "total_super_likes": 0,
    "total_dislikes": 0,
    "total_interactions": 0,
    "last_updated": None,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _count_by_type(db: Session, column, value) -> dict[InteractionType, int]:
    rows = db.execute(
        select(QuestionInteraction.interaction_type, func.count(QuestionInteraction.interaction_id))
        .where(column == value)
        .group_by(QuestionInteraction.interaction_type)
    ).all()
    return {t: n for t, n in rows}


def _refresh_question_summary(db: Session, question_id: int, now: datetime) -> None:
    counts = _count_by_type(db, QuestionInteraction.question_id, question_id)
    summary = db.get(QuestionAnalyticsSummary, question_id) or QuestionAnalyticsSummary(question_id=question_id)
    summary.likes = counts.get(InteractionType.LIKE, 0)
    summary.super_likes = counts.get(InteractionType.SUPER_LIKE, 0)
    summary.dislikes = counts.get(InteractionType.DISLIKE, 0)
    summary.total_interactions = sum(counts.values())
    summary.last_updated = now
    db.add(summary)


def _refresh_user_summary(db: Session, user_id: int, now: datetime) -> None:
    counts = _count_by_type(db, QuestionInteraction.user_id, user_id)
    summary = db.get(UserAnalyticsSummary, user_id) or UserAnalyticsSummary(user_id=user_id)
    summary.likes_given = counts.get(InteractionType.LIKE, 0)
    summary.super_likes_given = counts.get(InteractionType.SUPER_LIKE, 0)
    summary.dislikes_given = counts.get(InteractionType.DISLIKE, 0)
    summary.interactions_given = sum(counts.values())
    summary.last_updated = now
    db.add(summary)


def _require_question(db: Session, question_id: int) -> Question:
    question = db.get(Question, question_id)
    if question is None:
        raise NotFound("Question not found")
    return question


def add_interaction(
    db: Session,
    *,
    user_id: int,
    question_id: int,
    interaction_type: InteractionType,
    now: datetime | None = None,
) -> QuestionInteraction:
    now = now or _utcnow()
    _require_question(db, question_id)

    interaction = db.execute(
        select(QuestionInteraction).where(
            QuestionInteraction.user_id == user_id,
            QuestionInteraction.question_id == question_id,
            QuestionInteraction.interaction_type == interaction_type,
        )
    ).scalar_one_or_none()
    if interaction is None:
        interaction = QuestionInteraction(
            user_id=user_id,
            question_id=question_id,
            interaction_type=interaction_type,
            created_at=now,
            updated_at=now,
        )
        db.add(interaction)
    else:
        interaction.updated_at = now

    try:
        db.flush()
        _refresh_question_summary(db, question_id, now)
        _refresh_user_summary(db, user_id, now)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict("Interaction already exists") from e

    logger.info(
        "Interaction recorded user_id=%s question_id=%s type=%s",
        user_id,
        question_id,
        interaction_type.value,
    )
    return interaction


def remove_interaction(
    db: Session,
    *,
    user_id: int,
    question_id: int,
    interaction_type: InteractionType,
    now: datetime | None = None,
) -> None:
    now = now or _utcnow()
    result = db.execute(
        delete(QuestionInteraction)
        .where(
            QuestionInteraction.user_id == user_id,
            QuestionInteraction.question_id == question_id,
            QuestionInteraction.interaction_type == interaction_type,
        )
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        db.rollback()
        raise NotFound("Interaction not found")
    _refresh_question_summary(db, question_id, now)
    _refresh_user_summary(db, user_id, now)
    db.commit()
    logger.info(
        "Interaction removed user_id=%s question_id=%s type=%s",
        user_id,
        question_id,
        interaction_type.value,
    )


def list_user_question_interactions(db: Session, *, user_id: int, question_id: int) -> list[QuestionInteraction]:
    stmt = (
        select(QuestionInteraction)
        .where(QuestionInteraction.user_id == user_id, QuestionInteraction.question_id == question_id)
        .order_by(QuestionInteraction.created_at.desc(), QuestionInteraction.interaction_id.desc())
    )
    return list(db.execute(stmt).scalars())


def _question_with_analytics(question: Question, summary: QuestionAnalyticsSummary | None) -> dict:
    out = question.to_public_dict()
    out["analytics"] = summary.to_public_dict() if summary else dict(EMPTY_QUESTION_ANALYTICS)
    return out


def question_analytics(db: Session, question_id: int) -> dict:
    question = _require_question(db, question_id)
    return _question_with_analytics(question, db.get(QuestionAnalyticsSummary, question_id))


def _ranked_questions(db: Session, *, order_by: list, offset: int, limit: int) -> list[dict]:
    stmt = (
        select(Question, QuestionAnalyticsSummary)
        .outerjoin(QuestionAnalyticsSummary, QuestionAnalyticsSummary.question_id == Question.question_id)
        .order_by(*order_by)
        .offset(offset)
        .limit(limit)
    )
    return [_question_with_analytics(q, s) for q, s in db.execute(stmt).all()]


def list_questions_with_analytics(
    db: Session,
    *,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "total_interactions",
    sort_order: str = "desc",
) -> dict:
    if sort_by == "created_at":
        key = Question.created_at
    else:
        key = func.coalesce(SORT_COLUMNS[sort_by], 0)
    primary = key.asc() if sort_order == "asc" else key.desc()

    total = db.execute(select(func.count(Question.question_id))).scalar_one()
    items = _ranked_questions(db, order_by=[primary, Question.question_id.asc()], offset=(page - 1) * limit, limit=limit)
    return {
        "items": items,
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }


def top_questions(db: Session, *, kind: str = "total", limit: int = 10) -> dict:
    key = func.coalesce(SORT_COLUMNS[kind], 0)
    items = _ranked_questions(db, order_by=[key.desc(), Question.question_id.asc()], offset=0, limit=limit)
    return {"items": items, "type": kind, "limit": limit}


def user_analytics(db: Session, user_id: int) -> dict:
    summary = db.get(UserAnalyticsSummary, user_id)
    if summary is None:
        return {
            "user_id": user_id,
            "total_likes_given": 0,
            "total_super_likes_given": 0,
            "total_dislikes_given": 0,
            "total_interactions_given": 0,
            "last_updated": None,
        }
    return summary.to_public_dict()


def user_interaction_history(db: Session, user_id: int, *, page: int = 1, limit: int = 20) -> dict:
    total = db.execute(
        select(func.count(QuestionInteraction.interaction_id)).where(QuestionInteraction.user_id == user_id)
    ).scalar_one()
    rows = db.execute(
        select(QuestionInteraction, Question)
        .join(Question, Question.question_id == QuestionInteraction.question_id)
        .where(QuestionInteraction.user_id == user_id)
        .order_by(QuestionInteraction.created_at.desc(), QuestionInteraction.interaction_id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    items = []
    for interaction, question in rows:
        item = interaction.to_public_dict()
        item["question"] = {
            "question_id": question.question_id,
            "question": question.question,
            "prompt": question.prompt,
        }
        items.append(item)
    return {
        "items": items,
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }
