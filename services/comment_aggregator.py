"""Аргументы баттла и их ранжирование по лайкам."""
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, List, Optional

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import BattleEnded, BattleExpired, Forbidden, InvalidInput, NotFound
from models.battle import BattleSide, OpinionBattle
from models.comment import BattleComment
from models.like import BattleCommentLike
from models.user import User
from services.battle_state import is_expired


@dataclass(frozen=True)
class RankedComment:
    comment: BattleComment
    likes_count: int


class RankedComments:
    """
    Ленивая перезапускаемая последовательность аргументов одной стороны.

    Запрос к базе выполняется при каждой итерации, поэтому повторный
    проход видит актуальные лайки. Порядок: лайки по убыванию, затем
    более ранний created_at, затем id.
    """

    def __init__(self, db: AsyncSession, battle_id: int, side: BattleSide):
        self.db = db
        self.battle_id = battle_id
        self.side = BattleSide(side)

    def statement(self):
        likes_count = func.count(BattleCommentLike.id).label("likes_count")
        return (
            select(BattleComment, likes_count)
            .outerjoin(BattleCommentLike, BattleCommentLike.comment_id == BattleComment.id)
            .where(
                BattleComment.battle_id == self.battle_id,
                BattleComment.side == self.side.value,
            )
            .group_by(BattleComment.id)
            .order_by(desc(likes_count), BattleComment.created_at.asc(), BattleComment.id.asc())
        )

    async def __aiter__(self) -> AsyncIterator[RankedComment]:
        result = await self.db.execute(self.statement())
        for comment, likes_count in result.all():
            yield RankedComment(comment=comment, likes_count=likes_count)

    async def all(self) -> List[RankedComment]:
        return [entry async for entry in self]

    async def first(self) -> Optional[RankedComment]:
        result = await self.db.execute(self.statement().limit(1))
        row = result.first()
        if row is None:
            return None
        return RankedComment(comment=row[0], likes_count=row[1])


def list_comments(db: AsyncSession, battle_id: int, side: BattleSide) -> RankedComments:
    return RankedComments(db, battle_id, side)


def pick_best(ranked: List[RankedComment]) -> Optional[RankedComment]:
    """Лучший аргумент: первый в рейтинге, у которого есть хотя бы один лайк."""
    if ranked and ranked[0].likes_count > 0:
        return ranked[0]
    return None


async def best_comment(
    db: AsyncSession, battle_id: int, side: BattleSide
) -> Optional[RankedComment]:
    top = await list_comments(db, battle_id, side).first()
    if top is None or top.likes_count <= 0:
        return None
    return top


def clean_content(text: Optional[str]) -> str:
    content = (text or "").strip()
    if not content:
        raise InvalidInput("Аргумент не может быть пустым.")
    if len(content) > settings.COMMENT_MAX_LENGTH:
        raise InvalidInput(
            f"Аргумент длиннее {settings.COMMENT_MAX_LENGTH} символов."
        )
    return content


async def add_comment(
    db: AsyncSession,
    battle_id: int,
    author_id: int,
    side: BattleSide,
    text: str,
    *,
    now: datetime,
) -> BattleComment:
    try:
        side = BattleSide(side)
    except ValueError:
        raise InvalidInput("Сторона должна быть 'agree' или 'disagree'.")
    content = clean_content(text)

    battle = await db.get(OpinionBattle, battle_id)
    if battle is None:
        raise NotFound("Баттл не найден.")
    if await db.get(User, author_id) is None:
        raise NotFound("User not found")
    if not battle.is_active:
        raise BattleEnded()
    # Статус мог ещё не смениться, но срок уже вышел
    if is_expired(battle, now):
        raise BattleExpired()

    comment = BattleComment(
        battle_id=battle_id,
        user_id=author_id,
        side=side.value,
        content=content,
        created_at=now,
    )
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    return comment


async def delete_comment(
    db: AsyncSession, comment_id: int, battle: OpinionBattle, requester_id: int
) -> None:
    comment = await db.get(BattleComment, comment_id)
    if comment is None:
        raise NotFound("Аргумент не найден.")
    if comment.user_id != requester_id:
        raise Forbidden("Можно удалять только свои аргументы.")
    if not battle.is_active:
        raise BattleEnded("Нельзя удалять аргументы завершённого баттла.")

    await db.execute(
        delete(BattleCommentLike).where(BattleCommentLike.comment_id == comment_id)
    )
    await db.execute(delete(BattleComment).where(BattleComment.id == comment_id))
    await db.commit()
