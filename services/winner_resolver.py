"""Выбор победителя баттла по лучшим аргументам каждой стороны."""
from dataclasses import dataclass
from typing import Optional

from models.battle import BattleSide


@dataclass(frozen=True)
class RankedEntry:
    comment_id: int
    likes_count: int


@dataclass(frozen=True)
class Resolution:
    winner_side: Optional[BattleSide]
    winner_comment_id: Optional[int]

    @property
    def is_tie(self) -> bool:
        return self.winner_side is None


NO_WINNER = Resolution(winner_side=None, winner_comment_id=None)


def resolve_winner(
    agree_best: Optional[RankedEntry],
    disagree_best: Optional[RankedEntry],
) -> Resolution:
    """
    Чистая функция: лучший аргумент «за» против лучшего «против».

    Пустая сторона проигрывает непустой. При равенстве лайков
    победителя нет, очки никому не начисляются.
    """
    if agree_best is None and disagree_best is None:
        return NO_WINNER
    if disagree_best is None:
        return Resolution(BattleSide.AGREE, agree_best.comment_id)
    if agree_best is None:
        return Resolution(BattleSide.DISAGREE, disagree_best.comment_id)

    if agree_best.likes_count > disagree_best.likes_count:
        return Resolution(BattleSide.AGREE, agree_best.comment_id)
    if disagree_best.likes_count > agree_best.likes_count:
        return Resolution(BattleSide.DISAGREE, disagree_best.comment_id)
    return NO_WINNER
