"""Реестр лайков аргументов: не больше одного лайка на пару (аргумент, пользователь)."""
import logging
from typing import Iterable, Set

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFound, StoreUnavailable
from models.comment import BattleComment
from models.like import BattleCommentLike
from models.user import User

logger = logging.getLogger(__name__)

MAX_TOGGLE_ATTEMPTS = 3


async def toggle_like(db: AsyncSession, comment_id: int, user_id: int) -> bool:
    """
    Ставит лайк, если его не было, иначе снимает. Возвращает новое состояние.

    Статус баттла не проверяется: лайки можно менять и после завершения,
    победитель при этом не пересчитывается.
    """
    await _require_targets(db, comment_id, user_id)

    for attempt in range(MAX_TOGGLE_ATTEMPTS):
        # Сначала пробуем снять лайк: удаление атомарно для пары
        removed = await db.execute(
            delete(BattleCommentLike)
            .where(
                BattleCommentLike.comment_id == comment_id,
                BattleCommentLike.user_id == user_id,
            )
        )
        if removed.rowcount:
            await db.commit()
            return False

        db.add(BattleCommentLike(comment_id=comment_id, user_id=user_id))
        try:
            await db.commit()
            return True
        except IntegrityError:
            # Параллельный запрос того же пользователя успел вставить строку,
            # наш переключатель применяется поверх него
            await db.rollback()
            await _require_targets(db, comment_id, user_id)
            logger.info(
                "Concurrent like toggle on comment %s by user %s, retry %d",
                comment_id, user_id, attempt + 1,
            )

    raise StoreUnavailable("Не удалось переключить лайк, попробуйте ещё раз.")


async def like_count(db: AsyncSession, comment_id: int) -> int:
    result = await db.execute(
        select(func.count(BattleCommentLike.id)).where(
            BattleCommentLike.comment_id == comment_id
        )
    )
    return result.scalar_one()


async def has_liked(db: AsyncSession, comment_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(func.count(BattleCommentLike.id)).where(
            BattleCommentLike.comment_id == comment_id,
            BattleCommentLike.user_id == user_id,
        )
    )
    return result.scalar_one() > 0


async def liked_comment_ids(
    db: AsyncSession, user_id: int, comment_ids: Iterable[int]
) -> Set[int]:
    ids = list(comment_ids)
    if not ids:
        return set()
    result = await db.execute(
        select(BattleCommentLike.comment_id).where(
            BattleCommentLike.user_id == user_id,
            BattleCommentLike.comment_id.in_(ids),
        )
    )
    return {row[0] for row in result.all()}


async def _comment_exists(db: AsyncSession, comment_id: int) -> bool:
    result = await db.execute(
        select(func.count(BattleComment.id)).where(BattleComment.id == comment_id)
    )
    return result.scalar_one() > 0


async def _user_exists(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(select(func.count(User.id)).where(User.id == user_id))
    return result.scalar_one() > 0


async def _require_targets(db: AsyncSession, comment_id: int, user_id: int) -> None:
    if not await _comment_exists(db, comment_id):
        raise NotFound("Аргумент не найден.")
    if not await _user_exists(db, user_id):
        raise NotFound("User not found")
