"""Движок баттлов мнений: создание, аргументы, лайки, ленивое закрытие.

Все пути чтения и записи начинаются с check_and_close: если срок вышел,
баттл закрывается условной записью, а победитель вычисляется один раз
в той же транзакции. Проигравший гонку просто перечитывает результат.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import (
    BattleEnded,
    Conflict,
    Forbidden,
    InvalidInput,
    NotFound,
    StoreUnavailable,
    Unauthenticated,
)
from models.battle import BattleSide, BattleStatus, OpinionBattle
from models.comment import BattleComment
from models.follow import Follow
from models.like import BattleCommentLike
from models.user import User
from schemas.battle import SeriesRef
from services import comment_aggregator, like_registry
from services.battle_state import (
    claim_closing,
    compute_deadline,
    needs_closing,
    record_resolution,
    utcnow,
    validate_duration,
)
from services.comment_aggregator import RankedComment, list_comments, pick_best
from services.winner_resolver import RankedEntry, Resolution, resolve_winner

logger = logging.getLogger(__name__)

FEED_SCOPES = ("global", "following")


@dataclass
class BattleView:
    """Баттл с ранжированными аргументами обеих сторон для показа."""

    battle: OpinionBattle
    creator: Optional[User]
    agree_comments: List[RankedComment]
    disagree_comments: List[RankedComment]
    liked_comment_ids: Set[int] = field(default_factory=set)
    authors: Dict[int, User] = field(default_factory=dict)

    @property
    def best_agree(self) -> Optional[RankedComment]:
        return pick_best(self.agree_comments)

    @property
    def best_disagree(self) -> Optional[RankedComment]:
        return pick_best(self.disagree_comments)

    @property
    def winner_comment(self) -> Optional[RankedComment]:
        winner_id = self.battle.winner_comment_id
        if winner_id is None:
            return None
        for entry in self.agree_comments + self.disagree_comments:
            if entry.comment.id == winner_id:
                return entry
        return None


@dataclass
class CriticRank:
    user: User
    rank: int


def _require_identity(user_id: Optional[int]) -> int:
    if not user_id:
        raise Unauthenticated()
    return user_id


def _clean_text(value: Optional[str], label: str, max_length: int) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidInput(f"{label} не может быть пустым.")
    if len(text) > max_length:
        raise InvalidInput(f"{label} длиннее {max_length} символов.")
    return text


def _as_entry(ranked: Optional[RankedComment]) -> Optional[RankedEntry]:
    if ranked is None:
        return None
    return RankedEntry(comment_id=ranked.comment.id, likes_count=ranked.likes_count)


class BattleEngine:
    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    @asynccontextmanager
    async def _store(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Store failure during %s", action)
            raise StoreUnavailable() from exc

    # --- создание и чтение ---

    async def create_battle(
        self,
        creator_id: Optional[int],
        topic: str,
        description: str,
        duration_hours: float,
        is_public: bool,
        series: Optional[SeriesRef],
    ) -> OpinionBattle:
        creator_id = _require_identity(creator_id)
        topic = _clean_text(topic, "Тезис баттла", settings.TOPIC_MAX_LENGTH)
        description = _clean_text(
            description, "Описание баттла", settings.DESCRIPTION_MAX_LENGTH
        )
        duration = validate_duration(duration_hours)
        if series is None:
            raise InvalidInput("Нужно выбрать связанную серию.")

        now = self.clock()
        battle = OpinionBattle(
            creator_id=creator_id,
            topic=topic,
            description=description,
            tmdb_id=series.tmdb_id,
            series_title=series.title,
            series_image=series.image_url,
            duration_hours=duration,
            is_public=is_public,
            ends_at=compute_deadline(now, duration),
            status=BattleStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        async with self._store("create_battle"):
            if await self.db.get(User, creator_id) is None:
                raise NotFound("User not found")
            self.db.add(battle)
            await self.db.commit()
            await self.db.refresh(battle)

        logger.info(
            "Battle %s created by user %s, ends at %s", battle.id, creator_id, battle.ends_at
        )
        return battle

    async def get_battle(self, battle_id: int, viewer_id: Optional[int] = None) -> BattleView:
        battle = await self._get_battle(battle_id)
        battle = await self.check_and_close(battle)
        return await self._build_view(battle, viewer_id)

    async def resolve_if_expired(self, battle_id: int) -> OpinionBattle:
        """Идемпотентно: повторный вызов возвращает уже сохранённый результат."""
        battle = await self._get_battle(battle_id)
        return await self.check_and_close(battle)

    async def list_battles(
        self,
        viewer_id: Optional[int] = None,
        scope: str = "global",
        limit: int = 10,
        offset: int = 0,
    ) -> List[BattleView]:
        if scope not in FEED_SCOPES:
            raise InvalidInput("scope должен быть 'global' или 'following'.")
        if not 1 <= limit <= settings.FEED_MAX_LIMIT:
            raise InvalidInput(f"limit должен быть от 1 до {settings.FEED_MAX_LIMIT}.")
        if offset < 0:
            raise InvalidInput("offset не может быть отрицательным.")

        async with self._store("list_battles"):
            following_ids = await self._following_ids(viewer_id) if viewer_id else set()

            stmt = select(OpinionBattle.id)
            if scope == "following":
                if not following_ids:
                    return []
                stmt = stmt.where(OpinionBattle.creator_id.in_(following_ids))

            visible = [OpinionBattle.is_public.is_(True)]
            if viewer_id:
                visible.append(OpinionBattle.creator_id == viewer_id)
            if following_ids:
                visible.append(OpinionBattle.creator_id.in_(following_ids))

            stmt = (
                stmt.where(or_(*visible))
                .order_by(OpinionBattle.created_at.desc(), OpinionBattle.id.desc())
                .offset(offset)
                .limit(limit)
            )
            battle_ids = list((await self.db.execute(stmt)).scalars().all())

        # Сначала закрываем истёкшие: откат при гонке сбрасывает загруженные объекты
        for battle_id in battle_ids:
            battle = await self.db.get(OpinionBattle, battle_id)
            if battle is None:
                continue
            try:
                await self.check_and_close(battle)
            except StoreUnavailable:
                logger.warning("Battle %s stays active until the next read", battle_id)

        views: List[BattleView] = []
        for battle_id in battle_ids:
            async with self._store("list_battles"):
                battle = await self.db.get(OpinionBattle, battle_id)
            if battle is None:
                continue
            views.append(await self._build_view(battle, viewer_id))
        return views

    # --- аргументы и лайки ---

    async def submit_comment(
        self, battle_id: int, user_id: Optional[int], side: str, text: str
    ) -> BattleComment:
        user_id = _require_identity(user_id)
        async with self._store("submit_comment"):
            comment = await comment_aggregator.add_comment(
                self.db, battle_id, user_id, side, text, now=self.clock()
            )
        logger.info(
            "Comment %s added to battle %s (%s) by user %s",
            comment.id, battle_id, comment.side, user_id,
        )
        return comment

    async def toggle_comment_like(self, comment_id: int, user_id: Optional[int]) -> bool:
        user_id = _require_identity(user_id)
        async with self._store("toggle_comment_like"):
            return await like_registry.toggle_like(self.db, comment_id, user_id)

    async def like_count(self, comment_id: int) -> int:
        async with self._store("like_count"):
            return await like_registry.like_count(self.db, comment_id)

    async def delete_comment(self, comment_id: int, requester_id: Optional[int]) -> None:
        requester_id = _require_identity(requester_id)
        async with self._store("delete_comment"):
            comment = await self.db.get(BattleComment, comment_id)
            if comment is None:
                raise NotFound("Аргумент не найден.")
            battle_id = comment.battle_id
        battle = await self._get_battle(battle_id)
        battle = await self.check_and_close(battle)
        async with self._store("delete_comment"):
            await comment_aggregator.delete_comment(self.db, comment_id, battle, requester_id)
        logger.info("Comment %s deleted by user %s", comment_id, requester_id)

    # --- удаление и завершение баттла ---

    async def delete_battle(self, battle_id: int, requester_id: Optional[int]) -> None:
        """Удаляет лайки, аргументы и сам баттл одной транзакцией."""
        requester_id = _require_identity(requester_id)
        battle = await self._get_battle(battle_id)
        if battle.creator_id != requester_id:
            raise Forbidden("Только автор может удалить баттл.")

        comment_ids = select(BattleComment.id).where(BattleComment.battle_id == battle_id)
        async with self._store("delete_battle"):
            await self.db.execute(
                delete(BattleCommentLike).where(BattleCommentLike.comment_id.in_(comment_ids))
            )
            await self.db.execute(
                delete(BattleComment).where(BattleComment.battle_id == battle_id)
            )
            removed = await self.db.execute(
                delete(OpinionBattle).where(OpinionBattle.id == battle_id)
            )
            if removed.rowcount != 1:
                await self.db.rollback()
                raise NotFound("Баттл не найден.")
            await self.db.commit()
        logger.info("Battle %s deleted by user %s", battle_id, requester_id)

    async def end_battle(
        self,
        battle_id: int,
        requester_id: Optional[int],
        winner_comment_id: Optional[int] = None,
    ) -> OpinionBattle:
        """Ручное завершение автором. Без winner_comment_id победителя выбирают лайки."""
        requester_id = _require_identity(requester_id)
        battle = await self._get_battle(battle_id)
        if battle.creator_id != requester_id:
            raise Forbidden("Только автор может завершить баттл.")
        battle = await self.check_and_close(battle)
        if not battle.is_active:
            raise BattleEnded()

        resolution = None
        if winner_comment_id is not None:
            async with self._store("end_battle"):
                comment = await self.db.get(BattleComment, winner_comment_id)
            if comment is None or comment.battle_id != battle.id:
                raise NotFound("Победивший аргумент не найден.")
            resolution = Resolution(BattleSide(comment.side), comment.id)

        return await self._close(battle, resolution)

    async def check_and_close(self, battle: OpinionBattle) -> OpinionBattle:
        if not needs_closing(battle, self.clock()):
            return battle
        return await self._close(battle)

    async def _close(
        self, battle: OpinionBattle, resolution: Optional[Resolution] = None
    ) -> OpinionBattle:
        battle_id = battle.id
        try:
            await claim_closing(self.db, battle_id, self.clock())
            if resolution is None:
                resolution = await self._resolve(battle_id)
            await record_resolution(self.db, battle_id, resolution)
            await self._award_points(resolution)
            await self.db.commit()
            logger.info(
                "Battle %s ended, winner side=%s comment=%s",
                battle_id,
                resolution.winner_side.value if resolution.winner_side else None,
                resolution.winner_comment_id,
            )
        except Conflict:
            await self.db.rollback()
            logger.info("Battle %s was already closed by a concurrent request", battle_id)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Failed to close battle %s, it stays active", battle_id)
            raise StoreUnavailable() from exc

        async with self._store("reload battle"):
            await self.db.refresh(battle)
        return battle

    async def _resolve(self, battle_id: int) -> Resolution:
        agree_top = await list_comments(self.db, battle_id, BattleSide.AGREE).first()
        disagree_top = await list_comments(self.db, battle_id, BattleSide.DISAGREE).first()
        return resolve_winner(_as_entry(agree_top), _as_entry(disagree_top))

    async def _award_points(self, resolution: Resolution) -> None:
        if resolution.winner_comment_id is None:
            return
        result = await self.db.execute(
            select(BattleComment.user_id).where(
                BattleComment.id == resolution.winner_comment_id
            )
        )
        author_id = result.scalar_one_or_none()
        if author_id is None:
            return
        await self.db.execute(
            update(User)
            .where(User.id == author_id)
            .values(critic_score=User.critic_score + settings.BATTLE_WIN_POINTS)
            .execution_options(synchronize_session=False)
        )

    # --- рейтинг ---

    async def critic_ranking(self, limit: int = 50) -> List[CriticRank]:
        if limit < 1:
            raise InvalidInput("limit должен быть положительным.")
        async with self._store("critic_ranking"):
            result = await self.db.execute(
                select(User)
                .order_by(User.critic_score.desc(), User.created_at.asc(), User.id.asc())
                .limit(limit)
                .execution_options(populate_existing=True)
            )
            users = result.scalars().all()
        return [CriticRank(user=user, rank=index + 1) for index, user in enumerate(users)]

    # --- вспомогательное ---

    async def _get_battle(self, battle_id: int) -> OpinionBattle:
        async with self._store("get_battle"):
            battle = await self.db.get(OpinionBattle, battle_id)
        if battle is None:
            raise NotFound("Баттл не найден.")
        return battle

    async def _following_ids(self, viewer_id: int) -> Set[int]:
        result = await self.db.execute(
            select(Follow.following_id).where(Follow.follower_id == viewer_id)
        )
        return {row[0] for row in result.all()}

    async def _build_view(self, battle: OpinionBattle, viewer_id: Optional[int]) -> BattleView:
        async with self._store("build battle view"):
            creator = await self.db.get(User, battle.creator_id)
            agree = await list_comments(self.db, battle.id, BattleSide.AGREE).all()
            disagree = await list_comments(self.db, battle.id, BattleSide.DISAGREE).all()
            entries = agree + disagree
            authors = await self._users_by_id({e.comment.user_id for e in entries})
            liked: Set[int] = set()
            if viewer_id:
                liked = await like_registry.liked_comment_ids(
                    self.db, viewer_id, [e.comment.id for e in entries]
                )
        return BattleView(
            battle=battle,
            creator=creator,
            agree_comments=agree,
            disagree_comments=disagree,
            liked_comment_ids=liked,
            authors=authors,
        )

    async def _users_by_id(self, user_ids: Set[int]) -> Dict[int, User]:
        if not user_ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(user_ids)))
        return {user.id: user for user in result.scalars().all()}
