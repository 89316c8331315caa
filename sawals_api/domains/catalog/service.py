import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sawals_api.core.errors import Conflict, NotFound, ValidationError
from sawals_api.domains.catalog.models import Genre, Question, QuestionGenreMapping, QuestionType

logger = logging.getLogger(__name__)


def _commit(db: Session, conflict_message: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict(conflict_message) from e
    # Bulk updates bypass loaded collections.
    db.expire_all()


# ---------------- question types ----------------


def list_question_types(db: Session) -> list[QuestionType]:
    return list(db.execute(select(QuestionType).order_by(QuestionType.type_name)).scalars())


def get_question_type(db: Session, type_id: int) -> QuestionType:
    qt = db.get(QuestionType, type_id)
    if qt is None:
        raise NotFound("question type not found")
    return qt


def create_question_type(db: Session, *, type_name: str, genre_ids: list[int] | None = None) -> QuestionType:
    qt = QuestionType(type_name=type_name)
    db.add(qt)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise Conflict("question type already exists") from e
    if genre_ids:
        db.execute(update(Genre).where(Genre.genre_id.in_(genre_ids)).values(type_id=qt.type_id))
    _commit(db, "question type already exists")
    logger.info("Question type created type_id=%s name=%s", qt.type_id, type_name)
    return get_question_type(db, qt.type_id)


def rename_question_type(db: Session, type_id: int, *, type_name: str) -> QuestionType:
    qt = get_question_type(db, type_id)
    qt.type_name = type_name
    _commit(db, "question type name already in use")
    return get_question_type(db, type_id)


def delete_question_type(db: Session, type_id: int) -> None:
    qt = get_question_type(db, type_id)
    if qt.genres:
        raise Conflict("cannot delete question type due to existing references", extra={"id": type_id})
    db.delete(qt)
    db.commit()
    logger.info("Question type deleted type_id=%s", type_id)


def link_genres(db: Session, type_id: int, genre_ids: list[int]) -> QuestionType:
    get_question_type(db, type_id)
    db.execute(update(Genre).where(Genre.genre_id.in_(genre_ids)).values(type_id=type_id))
    _commit(db, "genre already exists for this question type")
    return get_question_type(db, type_id)


def unlink_genres(db: Session, type_id: int, genre_ids: list[int]) -> QuestionType:
    get_question_type(db, type_id)
    db.execute(
        update(Genre).where(Genre.genre_id.in_(genre_ids), Genre.type_id == type_id).values(type_id=None)
    )
    _commit(db, "genre already exists")
    return get_question_type(db, type_id)


# ---------------- genres ----------------


def list_genres(db: Session) -> list[Genre]:
    return list(db.execute(select(Genre).order_by(Genre.name, Genre.genre_id)).scalars())


def get_genre(db: Session, genre_id: int) -> Genre:
    genre = db.get(Genre, genre_id)
    if genre is None:
        raise NotFound("genre not found")
    return genre


def create_genre(db: Session, *, genre_name: str, type_id: int) -> Genre:
    if db.get(QuestionType, type_id) is None:
        raise ValidationError("invalid type_id", extra={"type_id": type_id})
    genre = Genre(name=genre_name, type_id=type_id)
    db.add(genre)
    _commit(db, "genre already exists")
    logger.info("Genre created genre_id=%s type_id=%s", genre.genre_id, type_id)
    return genre


def rename_genre(db: Session, genre_id: int, *, genre_name: str) -> Genre:
    genre = get_genre(db, genre_id)
    genre.name = genre_name
    _commit(db, "genre name already in use")
    return get_genre(db, genre_id)


def delete_genre(db: Session, genre_id: int) -> None:
    genre = get_genre(db, genre_id)
    if genre.mappings:
        raise Conflict("cannot delete genre due to existing references", extra={"id": genre_id})
    db.delete(genre)
    db.commit()
    logger.info("Genre deleted genre_id=%s", genre_id)


# ---------------- questions ----------------


def _existing_genre_ids(db: Session, genre_ids: list[int]) -> list[int]:
    ids = list(dict.fromkeys(i for i in genre_ids if i > 0))
    if not ids:
        return []
    found = set(db.execute(select(Genre.genre_id).where(Genre.genre_id.in_(ids))).scalars())
    return [i for i in ids if i in found]


def get_question(db: Session, question_id: int) -> Question:
    question = db.get(Question, question_id)
    if question is None:
        raise NotFound("question not found")
    return question


def create_question(db: Session, *, text: str, genre_ids: list[int]) -> Question:
    ids = _existing_genre_ids(db, genre_ids)
    if not ids:
        raise ValidationError("provide at least one existing genre id in genre_ids")
    question = Question(question=text)
    question.mappings = [QuestionGenreMapping(genre_id=gid) for gid in ids]
    db.add(question)
    _commit(db, "question already exists")
    logger.info("Question created question_id=%s genres=%s", question.question_id, ids)
    return get_question(db, question.question_id)


def update_question(
    db: Session,
    question_id: int,
    *,
    text: str | None = None,
    genre_ids: list[int] | None = None,
) -> Question:
    if text is None and genre_ids is None:
        raise ValidationError("provide question text or genre_ids to update")
    question = get_question(db, question_id)
    if text is not None:
        question.question = text
    if genre_ids is not None:
        ids = _existing_genre_ids(db, genre_ids)
        if not ids:
            raise ValidationError("provide at least one existing genre id in genre_ids")
        keep = [m for m in question.mappings if m.genre_id in ids]
        kept_ids = {m.genre_id for m in keep}
        question.mappings = keep + [QuestionGenreMapping(genre_id=gid) for gid in ids if gid not in kept_ids]
    _commit(db, "question already exists")
    return get_question(db, question_id)


def list_questions_by_genre(db: Session, genre_id: int) -> list[Question]:
    get_genre(db, genre_id)
    stmt = (
        select(Question)
        .join(QuestionGenreMapping, QuestionGenreMapping.question_id == Question.question_id)
        .where(QuestionGenreMapping.genre_id == genre_id)
        .order_by(Question.question_id)
    )
    return list(db.execute(stmt).scalars())
