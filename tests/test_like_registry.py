import pytest
import pytest_asyncio
from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError

from core.errors import NotFound, StoreUnavailable
from core.id_generator import generate_random_id
from models.like import BattleCommentLike
from services import like_registry


@pytest_asyncio.fixture
async def comment(battle_engine, make_user, make_battle):
    creator = await make_user()
    battle = await make_battle(creator)
    return await battle_engine.submit_comment(battle.id, creator.id, "agree", "Сценаристы устали")


async def test_toggle_round_trip(db, comment, make_user):
    fan = await make_user()

    assert await like_registry.toggle_like(db, comment.id, fan.id) is True
    assert await like_registry.has_liked(db, comment.id, fan.id)

    assert await like_registry.toggle_like(db, comment.id, fan.id) is False
    assert not await like_registry.has_liked(db, comment.id, fan.id)

    assert await like_registry.toggle_like(db, comment.id, fan.id) is True
    assert await like_registry.like_count(db, comment.id) == 1


async def test_count_is_number_of_rows(db, comment, make_user):
    fans = [await make_user() for _ in range(3)]
    for fan in fans:
        await like_registry.toggle_like(db, comment.id, fan.id)
    await like_registry.toggle_like(db, comment.id, fans[0].id)

    rows = await db.execute(
        select(func.count()).select_from(BattleCommentLike).where(
            BattleCommentLike.comment_id == comment.id
        )
    )
    assert rows.scalar_one() == 2
    assert await like_registry.like_count(db, comment.id) == 2


async def test_toggle_unknown_comment(db, make_user):
    fan = await make_user()
    with pytest.raises(NotFound):
        await like_registry.toggle_like(db, 123456, fan.id)


async def test_lost_insert_race_is_applied_as_unlike(db, comment, make_user, monkeypatch):
    fan = await make_user()
    comment_id, fan_id = comment.id, fan.id
    original_execute = db.execute
    raced = []

    async def execute_with_concurrent_like(statement, *args, **kwargs):
        result = await original_execute(statement, *args, **kwargs)
        if getattr(statement, "is_delete", False) and not raced:
            # Параллельный запрос того же пользователя ставит лайк между DELETE и INSERT
            raced.append(True)
            await original_execute(
                insert(BattleCommentLike).values(
                    id=generate_random_id("battle_comment_likes"),
                    comment_id=comment_id,
                    user_id=fan_id,
                )
            )
            await db.commit()
        return result

    monkeypatch.setattr(db, "execute", execute_with_concurrent_like)

    # Наш переключатель применяется поверх чужого лайка и снимает его
    assert await like_registry.toggle_like(db, comment_id, fan_id) is False
    monkeypatch.undo()
    assert await like_registry.like_count(db, comment_id) == 0
    assert not await like_registry.has_liked(db, comment_id, fan_id)


async def test_toggle_by_unknown_user(db, comment):
    comment_id = comment.id
    with pytest.raises(NotFound):
        await like_registry.toggle_like(db, comment_id, 123123123)
    assert await like_registry.like_count(db, comment_id) == 0


async def test_exhausted_retries_are_reported_as_store_failure(db, comment, make_user, monkeypatch):
    fan = await make_user()
    comment_id, fan_id = comment.id, fan.id
    original_commit = db.commit

    async def commit_always_racing():
        if any(isinstance(obj, BattleCommentLike) for obj in db.new):
            raise IntegrityError("INSERT INTO battle_comment_likes", {}, Exception("UNIQUE"))
        await original_commit()

    monkeypatch.setattr(db, "commit", commit_always_racing)
    with pytest.raises(StoreUnavailable):
        await like_registry.toggle_like(db, comment_id, fan_id)
    monkeypatch.undo()
    assert await like_registry.like_count(db, comment_id) == 0


async def test_liked_comment_ids(db, battle_engine, comment, make_user):
    fan = await make_user()
    other = await battle_engine.submit_comment(comment.battle_id, fan.id, "disagree", "Нет, всё логично")
    await like_registry.toggle_like(db, comment.id, fan.id)

    liked = await like_registry.liked_comment_ids(db, fan.id, [comment.id, other.id])
    assert liked == {comment.id}
    assert await like_registry.liked_comment_ids(db, fan.id, []) == set()
