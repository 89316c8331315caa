from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from sawals_api.core.deps import get_current_user_id, get_db
from sawals_api.domains.analytics.schemas import (
    InteractionHistoryOut,
    InteractionIn,
    InteractionOut,
    InteractionRemovedOut,
    QuestionPageOut,
    QuestionWithAnalyticsOut,
    SortBy,
    SortOrder,
    TopKind,
    TopQuestionsOut,
    UserAnalyticsOut,
)
from sawals_api.domains.analytics.service import (
    add_interaction,
    list_questions_with_analytics,
    list_user_question_interactions,
    question_analytics,
    remove_interaction,
    top_questions,
    user_analytics,
    user_interaction_history,
)

# Every analytics route needs a signed-in user.
router = APIRouter(prefix="/api/analytics", dependencies=[Depends(get_current_user_id)])

QuestionId = Annotated[int, Path(gt=0)]
Page = Annotated[int, Query(ge=1)]
Limit = Annotated[int, Query(ge=1, le=100)]


@router.post("/questions/{question_id}/interact", response_model=InteractionOut)
def interact(
    payload: InteractionIn,
    question_id: QuestionId,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> InteractionOut:
    interaction = add_interaction(
        db,
        user_id=user_id,
        question_id=question_id,
        interaction_type=payload.interaction_type,
    )
    return InteractionOut(**interaction.to_public_dict())


@router.delete("/questions/{question_id}/interact", response_model=InteractionRemovedOut)
def remove(
    payload: InteractionIn,
    question_id: QuestionId,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> InteractionRemovedOut:
    remove_interaction(db, user_id=user_id, question_id=question_id, interaction_type=payload.interaction_type)
    return InteractionRemovedOut(question_id=question_id, interaction_type=payload.interaction_type.value)


@router.get("/questions/{question_id}/interactions", response_model=list[InteractionOut])
def my_question_interactions(
    question_id: QuestionId,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> list[InteractionOut]:
    rows = list_user_question_interactions(db, user_id=user_id, question_id=question_id)
    return [InteractionOut(**r.to_public_dict()) for r in rows]


@router.get("/questions/{question_id}", response_model=QuestionWithAnalyticsOut)
def question_detail(question_id: QuestionId, db: Session = Depends(get_db)) -> QuestionWithAnalyticsOut:
    return QuestionWithAnalyticsOut(**question_analytics(db, question_id))


@router.get("/questions", response_model=QuestionPageOut)
def questions(
    page: Page = 1,
    limit: Limit = 20,
    sort_by: SortBy = "total_interactions",
    sort_order: SortOrder = "desc",
    db: Session = Depends(get_db),
) -> QuestionPageOut:
    result = list_questions_with_analytics(db, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
    return QuestionPageOut(**result)


@router.get("/users/me", response_model=UserAnalyticsOut)
def my_analytics(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)) -> UserAnalyticsOut:
    return UserAnalyticsOut(**user_analytics(db, user_id))


@router.get("/users/me/interactions", response_model=InteractionHistoryOut)
def my_interactions(
    page: Page = 1,
    limit: Limit = 20,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> InteractionHistoryOut:
    return InteractionHistoryOut(**user_interaction_history(db, user_id, page=page, limit=limit))


@router.get("/top-questions", response_model=TopQuestionsOut)
def top(
    type: TopKind = "total",
    limit: Limit = 10,
    db: Session = Depends(get_db),
) -> TopQuestionsOut:
    return TopQuestionsOut(**top_questions(db, kind=type, limit=limit))
