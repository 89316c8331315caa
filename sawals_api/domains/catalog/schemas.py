from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, PositiveInt, field_validator


def _clean_name(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("name must not be empty")
    return v


Name = Annotated[str, Field(min_length=1, max_length=100), AfterValidator(_clean_name)]


class GenreRefOut(BaseModel):
    genre_id: int
    name: str


class QuestionTypeCreateIn(BaseModel):
    type_name: Name
    genre_ids: list[PositiveInt] = Field(default_factory=list)


class QuestionTypeRenameIn(BaseModel):
    type_name: Name


class GenreIdsIn(BaseModel):
    genre_ids: list[PositiveInt] = Field(min_length=1)


class QuestionTypeOut(BaseModel):
    type_id: int
    type_name: str
    created_at: str | None
    updated_at: str | None
    genres: list[GenreRefOut]


class GenreCreateIn(BaseModel):
    genre_name: Name
    type_id: PositiveInt


class GenreRenameIn(BaseModel):
    genre_name: Name


class GenreOut(BaseModel):
    genre_id: int
    type_id: int | None
    name: str
    created_at: str | None
    updated_at: str | None


class TypeRefOut(BaseModel):
    type_id: int
    type_name: str


class QuestionRefOut(BaseModel):
    question_id: int
    question: str


class GenreDetailOut(GenreOut):
    type: TypeRefOut | None
    questions: list[QuestionRefOut]


class QuestionGenreOut(BaseModel):
    genre_id: int
    name: str
    type_id: int | None
    type_name: str | None


class QuestionCreateIn(BaseModel):
    question: str = Field(min_length=5)
    genre_ids: list[int] | None = None
    # Older clients send the misspelled key.
    question_geners: list[int] | None = None

    @field_validator("question")
    @classmethod
    def _strip_question(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 5:
            raise ValueError("question must be at least 5 characters")
        return v

    def requested_genre_ids(self) -> list[int]:
        raw = self.genre_ids if self.genre_ids is not None else (self.question_geners or [])
        return list(dict.fromkeys(i for i in raw if i > 0))


class QuestionUpdateIn(BaseModel):
    question: str | None = Field(default=None, min_length=5)
    genre_ids: list[int] | None = None

    @field_validator("question")
    @classmethod
    def _strip_question(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 5:
            raise ValueError("question must be at least 5 characters")
        return v


class QuestionOut(BaseModel):
    question_id: int
    question: str
    prompt: str | None
    created_at: str | None
    updated_at: str | None
    genres: list[QuestionGenreOut]


class DeletedOut(BaseModel):
    id: int
    deleted: bool = True
