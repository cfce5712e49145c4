"""Утилиты для преобразования баттлов и аргументов в схемы Pydantic."""
from typing import Dict, List, Optional, Set

from models.battle import OpinionBattle
from models.user import User
from schemas.battle import BattleDetail, BattleRead, CommentRead, UserBrief
from schemas.ranking import CriticRankRead
from services.battle_engine import BattleView, CriticRank
from services.comment_aggregator import RankedComment


def to_user_brief(user: Optional[User]) -> Optional[UserBrief]:
    if user is None:
        return None
    return UserBrief(id=user.id, handle=user.handle, name=user.name, avatar=user.avatar)


def to_comment_read(
    entry: RankedComment,
    authors: Dict[int, User],
    liked_ids: Set[int],
) -> CommentRead:
    comment = entry.comment
    return CommentRead(
        id=comment.id,
        battle_id=comment.battle_id,
        user_id=comment.user_id,
        side=comment.side,
        content=comment.content,
        likes_count=entry.likes_count,
        created_at=comment.created_at,
        user=to_user_brief(authors.get(comment.user_id)),
        user_has_liked=comment.id in liked_ids,
    )


def to_battle_read(battle: OpinionBattle) -> BattleRead:
    return BattleRead.model_validate(battle)


def to_battle_detail(view: BattleView) -> BattleDetail:
    """Собрать полный ответ по баттлу: обе стороны, лучшие аргументы, победитель."""

    def convert(entry: Optional[RankedComment]) -> Optional[CommentRead]:
        if entry is None:
            return None
        return to_comment_read(entry, view.authors, view.liked_comment_ids)

    base = to_battle_read(view.battle)
    return BattleDetail(
        **base.model_dump(),
        creator=to_user_brief(view.creator),
        agree_comments=[convert(entry) for entry in view.agree_comments],
        disagree_comments=[convert(entry) for entry in view.disagree_comments],
        best_agree_comment=convert(view.best_agree),
        best_disagree_comment=convert(view.best_disagree),
        winner_comment=convert(view.winner_comment),
    )


def to_battle_details(views: List[BattleView]) -> List[BattleDetail]:
    return [to_battle_detail(view) for view in views]


def to_critic_rank_read(entry: CriticRank) -> CriticRankRead:
    user = entry.user
    return CriticRankRead(
        id=user.id,
        handle=user.handle,
        name=user.name,
        avatar=user.avatar,
        critic_score=user.critic_score,
        rank=entry.rank,
    )
