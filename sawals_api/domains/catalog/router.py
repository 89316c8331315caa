from typing import Annotated

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from sawals_api.core.deps import get_db
from sawals_api.domains.catalog.schemas import (
    DeletedOut,
    GenreCreateIn,
    GenreDetailOut,
    GenreIdsIn,
    GenreOut,
    GenreRenameIn,
    QuestionCreateIn,
    QuestionOut,
    QuestionTypeCreateIn,
    QuestionTypeOut,
    QuestionTypeRenameIn,
    QuestionUpdateIn,
)
from sawals_api.domains.catalog.service import (
    create_genre,
    create_question,
    create_question_type,
    delete_genre,
    delete_question_type,
    get_genre,
    get_question,
    get_question_type,
    link_genres,
    list_genres,
    list_question_types,
    list_questions_by_genre,
    rename_genre,
    rename_question_type,
    unlink_genres,
    update_question,
)

router = APIRouter(prefix="/api")

PositiveId = Annotated[int, Path(gt=0)]


# ---------------- question types ----------------


@router.get("/question-types", response_model=list[QuestionTypeOut])
def question_types(db: Session = Depends(get_db)) -> list[QuestionTypeOut]:
    return [QuestionTypeOut(**qt.to_public_dict()) for qt in list_question_types(db)]


@router.post("/question-types", response_model=QuestionTypeOut, status_code=status.HTTP_201_CREATED)
def question_type_create(payload: QuestionTypeCreateIn, db: Session = Depends(get_db)) -> QuestionTypeOut:
    qt = create_question_type(db, type_name=payload.type_name, genre_ids=payload.genre_ids)
    return QuestionTypeOut(**qt.to_public_dict())


@router.get("/question-types/{type_id}", response_model=QuestionTypeOut)
def question_type_detail(type_id: PositiveId, db: Session = Depends(get_db)) -> QuestionTypeOut:
    return QuestionTypeOut(**get_question_type(db, type_id).to_public_dict())


@router.patch("/question-types/{type_id}", response_model=QuestionTypeOut)
def question_type_rename(
    payload: QuestionTypeRenameIn,
    type_id: PositiveId,
    db: Session = Depends(get_db),
) -> QuestionTypeOut:
    return QuestionTypeOut(**rename_question_type(db, type_id, type_name=payload.type_name).to_public_dict())


@router.delete("/question-types/{type_id}", response_model=DeletedOut)
def question_type_delete(type_id: PositiveId, db: Session = Depends(get_db)) -> DeletedOut:
    delete_question_type(db, type_id)
    return DeletedOut(id=type_id)


@router.post("/question-types/{type_id}/genres", response_model=QuestionTypeOut)
def question_type_link_genres(
    payload: GenreIdsIn,
    type_id: PositiveId,
    db: Session = Depends(get_db),
) -> QuestionTypeOut:
    return QuestionTypeOut(**link_genres(db, type_id, payload.genre_ids).to_public_dict())


@router.delete("/question-types/{type_id}/genres", response_model=QuestionTypeOut)
def question_type_unlink_genres(
    payload: GenreIdsIn,
    type_id: PositiveId,
    db: Session = Depends(get_db),
) -> QuestionTypeOut:
    return QuestionTypeOut(**unlink_genres(db, type_id, payload.genre_ids).to_public_dict())


# ---------------- genres ----------------


@router.get("/genres", response_model=list[GenreDetailOut])
def genres(db: Session = Depends(get_db)) -> list[GenreDetailOut]:
    return [GenreDetailOut(**g.to_detail_dict()) for g in list_genres(db)]


@router.post("/genres", response_model=GenreOut, status_code=status.HTTP_201_CREATED)
def genre_create(payload: GenreCreateIn, db: Session = Depends(get_db)) -> GenreOut:
    return GenreOut(**create_genre(db, genre_name=payload.genre_name, type_id=payload.type_id).to_public_dict())


@router.get("/genres/{genre_id}", response_model=GenreDetailOut)
def genre_detail(genre_id: PositiveId, db: Session = Depends(get_db)) -> GenreDetailOut:
    return GenreDetailOut(**get_genre(db, genre_id).to_detail_dict())


@router.patch("/genres/{genre_id}", response_model=GenreOut)
def genre_rename(payload: GenreRenameIn, genre_id: PositiveId, db: Session = Depends(get_db)) -> GenreOut:
    return GenreOut(**rename_genre(db, genre_id, genre_name=payload.genre_name).to_public_dict())


@router.delete("/genres/{genre_id}", response_model=DeletedOut)
def genre_delete(genre_id: PositiveId, db: Session = Depends(get_db)) -> DeletedOut:
    delete_genre(db, genre_id)
    return DeletedOut(id=genre_id)


# ---------------- questions ----------------


@router.post("/questions", response_model=QuestionOut, status_code=status.HTTP_201_CREATED)
def question_create(payload: QuestionCreateIn, db: Session = Depends(get_db)) -> QuestionOut:
    question = create_question(db, text=payload.question, genre_ids=payload.requested_genre_ids())
    return QuestionOut(**question.to_public_dict())


@router.get("/questions/genre/{genre_id}", response_model=list[QuestionOut])
def questions_by_genre(genre_id: PositiveId, db: Session = Depends(get_db)) -> list[QuestionOut]:
    return [QuestionOut(**q.to_public_dict()) for q in list_questions_by_genre(db, genre_id)]


@router.get("/questions/{question_id}", response_model=QuestionOut)
def question_detail(question_id: PositiveId, db: Session = Depends(get_db)) -> QuestionOut:
    return QuestionOut(**get_question(db, question_id).to_public_dict())


@router.put("/questions/{question_id}", response_model=QuestionOut)
def question_update(
    payload: QuestionUpdateIn,
    question_id: PositiveId,
    db: Session = Depends(get_db),
) -> QuestionOut:
    question = update_question(db, question_id, text=payload.question, genre_ids=payload.genre_ids)
    return QuestionOut(**question.to_public_dict())
