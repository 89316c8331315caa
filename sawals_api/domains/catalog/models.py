from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sawals_api.core.db import Base, BigIntId


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class QuestionType(Base):
    __tablename__ = "question_types"

    type_id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    type_name: Mapped[str] = mapped_column(String(100), unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)

    genres: Mapped[list["Genre"]] = relationship(back_populates="question_type", order_by="Genre.name")

    def to_public_dict(self) -> dict:
        return {
            "type_id": self.type_id,
            "type_name": self.type_name,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "genres": [{"genre_id": g.genre_id, "name": g.name} for g in self.genres],
        }


class Genre(Base):
    __tablename__ = "genres"
    __table_args__ = (UniqueConstraint("type_id", "name", name="uq_genres_type_name"),)

    genre_id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    # Nullable: unlinking a genre from its type keeps the genre.
    type_id: Mapped[int | None] = mapped_column(ForeignKey("question_types.type_id"), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)

    question_type: Mapped[QuestionType | None] = relationship(back_populates="genres")
    mappings: Mapped[list["QuestionGenreMapping"]] = relationship(back_populates="genre")

    def to_public_dict(self) -> dict:
        return {
            "genre_id": self.genre_id,
            "type_id": self.type_id,
            "name": self.name,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def to_detail_dict(self) -> dict:
        out = self.to_public_dict()
        out["type"] = (
            {"type_id": self.question_type.type_id, "type_name": self.question_type.type_name}
            if self.question_type
            else None
        )
        out["questions"] = [
            {"question_id": m.question.question_id, "question": m.question.question} for m in self.mappings
        ]
        return out


class Question(Base):
    __tablename__ = "questions"

    question_id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    question: Mapped[str] = mapped_column(Text)
    prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)

    mappings: Mapped[list["QuestionGenreMapping"]] = relationship(
        back_populates="question",
        cascade="all, delete-orphan",
    )

    def genre_dicts(self) -> list[dict]:
        out = []
        for m in self.mappings:
            g = m.genre
            out.append(
                {
                    "genre_id": g.genre_id,
                    "name": g.name,
                    "type_id": g.type_id,
                    "type_name": g.question_type.type_name if g.question_type else None,
                }
            )
        return sorted(out, key=lambda d: d["genre_id"])

    def to_public_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "question": self.question,
            "prompt": self.prompt,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "genres": self.genre_dicts(),
        }


class QuestionGenreMapping(Base):
    __tablename__ = "question_genre_mappings"

    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.question_id", ondelete="CASCADE"),
        primary_key=True,
    )
    genre_id: Mapped[int] = mapped_column(ForeignKey("genres.genre_id"), primary_key=True, index=True)

    question: Mapped[Question] = relationship(back_populates="mappings")
    genre: Mapped[Genre] = relationship(back_populates="mappings")
