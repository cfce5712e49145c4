import pytest

from models.battle import BattleSide
from services.winner_resolver import NO_WINNER, RankedEntry, Resolution, resolve_winner


def test_no_comments_means_no_winner():
    assert resolve_winner(None, None) == NO_WINNER


def test_only_agree_side_wins_even_without_likes():
    result = resolve_winner(RankedEntry(comment_id=11, likes_count=0), None)
    assert result == Resolution(BattleSide.AGREE, 11)


def test_only_disagree_side_wins():
    result = resolve_winner(None, RankedEntry(comment_id=22, likes_count=4))
    assert result == Resolution(BattleSide.DISAGREE, 22)


@pytest.mark.parametrize(
    "agree_likes, disagree_likes, expected_side, expected_comment",
    [
        (5, 2, BattleSide.AGREE, 1),
        (2, 5, BattleSide.DISAGREE, 2),
        (3, 3, None, None),
        (0, 0, None, None),
    ],
)
def test_both_sides_compare_top_likes(agree_likes, disagree_likes, expected_side, expected_comment):
    result = resolve_winner(
        RankedEntry(comment_id=1, likes_count=agree_likes),
        RankedEntry(comment_id=2, likes_count=disagree_likes),
    )
    assert result.winner_side == expected_side
    assert result.winner_comment_id == expected_comment


def test_tie_is_reported():
    result = resolve_winner(RankedEntry(1, 3), RankedEntry(2, 3))
    assert result.is_tie
    assert not resolve_winner(RankedEntry(1, 4), RankedEntry(2, 3)).is_tie
