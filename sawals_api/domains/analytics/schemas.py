from typing import Literal

from pydantic import BaseModel

from sawals_api.domains.analytics.models import InteractionType
from sawals_api.domains.catalog.schemas import QuestionGenreOut

SortBy = Literal["likes", "super_likes", "dislikes", "total_interactions", "created_at"]
SortOrder = Literal["asc", "desc"]
TopKind = Literal["likes", "super_likes", "dislikes", "total"]


class InteractionIn(BaseModel):
    interaction_type: InteractionType


class InteractionOut(BaseModel):
    interaction_id: int
    user_id: int
    question_id: int
    interaction_type: str
    created_at: str | None
    updated_at: str | None


class InteractionRemovedOut(BaseModel):
    question_id: int
    interaction_type: str
    removed: bool = True


class QuestionAnalyticsOut(BaseModel):
    total_likes: int
    total_super_likes: int
    total_dislikes: int
    total_interactions: int
    last_updated: str | None


class QuestionWithAnalyticsOut(BaseModel):
    question_id: int
    question: str
    prompt: str | None
    created_at: str | None
    updated_at: str | None
    analytics: QuestionAnalyticsOut
    genres: list[QuestionGenreOut]


class QuestionPageOut(BaseModel):
    items: list[QuestionWithAnalyticsOut]
    page: int
    limit: int
    total: int
    total_pages: int
    sort_by: str
    sort_order: str


class TopQuestionsOut(BaseModel):
    items: list[QuestionWithAnalyticsOut]
    type: str
    limit: int


class UserAnalyticsOut(BaseModel):
    user_id: int
    total_likes_given: int
    total_super_likes_given: int
    total_dislikes_given: int
    total_interactions_given: int
    last_updated: str | None


class InteractionQuestionOut(BaseModel):
    question_id: int
    question: str
    prompt: str | None


class InteractionHistoryItemOut(InteractionOut):
    question: InteractionQuestionOut


class InteractionHistoryOut(BaseModel):
    items: list[InteractionHistoryItemOut]
    page: int
    limit: int
    total: int
    total_pages: int
