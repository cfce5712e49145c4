"""Машина состояний баттла: active → ended.

Истечение срока ленивое: его замечает любой читатель, фонового
планировщика нет. Закрытие выполняется условной записью (CAS по status),
поэтому побочные эффекты закрытия срабатывают ровно один раз.
"""
import math
from datetime import datetime, timedelta, timezone

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import Conflict, InvalidInput
from models.battle import BattleStatus, OpinionBattle
from services.winner_resolver import Resolution


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite отдаёт naive datetime, PostgreSQL отдаёт aware
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_duration(duration_hours: float) -> float:
    if duration_hours is None or not math.isfinite(duration_hours):
        raise InvalidInput("Длительность баттла должна быть числом.")
    if not (
        settings.BATTLE_MIN_DURATION_HOURS
        <= duration_hours
        <= settings.BATTLE_MAX_DURATION_HOURS
    ):
        raise InvalidInput("Длительность должна быть от 10 секунд до 48 часов.")
    return float(duration_hours)


def compute_deadline(created_at: datetime, duration_hours: float) -> datetime:
    return as_utc(created_at) + timedelta(hours=duration_hours)


def is_expired(battle: OpinionBattle, now: datetime) -> bool:
    return as_utc(now) >= as_utc(battle.ends_at)


def needs_closing(battle: OpinionBattle, now: datetime) -> bool:
    """Активный баттл, чей срок уже вышел."""
    return battle.is_active and is_expired(battle, now)


async def claim_closing(db: AsyncSession, battle_id: int, now: datetime) -> None:
    """
    Переводит баттл в ended, только если он всё ещё active.

    Бросает Conflict, если строку уже закрыл кто-то другой.
    Вызывающий обязан закоммитить или откатить транзакцию.
    """
    stmt = (
        update(OpinionBattle)
        .where(
            OpinionBattle.id == battle_id,
            OpinionBattle.status == BattleStatus.ACTIVE.value,
        )
        .values(status=BattleStatus.ENDED.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount != 1:
        raise Conflict(f"Battle {battle_id} is already closed")


async def record_resolution(
    db: AsyncSession, battle_id: int, resolution: Resolution
) -> None:
    stmt = (
        update(OpinionBattle)
        .where(OpinionBattle.id == battle_id)
        .values(
            winner_side=resolution.winner_side.value if resolution.winner_side else None,
            winner_comment_id=resolution.winner_comment_id,
        )
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)
