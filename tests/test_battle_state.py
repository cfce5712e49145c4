from datetime import datetime, timedelta, timezone

import pytest

from core.errors import Conflict, InvalidInput
from services.battle_state import (
    as_utc,
    claim_closing,
    compute_deadline,
    is_expired,
    needs_closing,
    validate_duration,
)


@pytest.mark.parametrize("hours", [0, 0.0027, -1, 48.01, 100, float("nan"), float("inf")])
def test_duration_out_of_bounds_rejected(hours):
    with pytest.raises(InvalidInput):
        validate_duration(hours)


@pytest.mark.parametrize("hours", [0.0028, 1, 24, 48])
def test_duration_within_bounds_accepted(hours):
    assert validate_duration(hours) == hours


def test_deadline_supports_fractional_hours():
    created = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert compute_deadline(created, 0.5) == created + timedelta(minutes=30)


def test_naive_timestamps_are_treated_as_utc():
    naive = datetime(2025, 1, 1, 10, 0)
    assert as_utc(naive) == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)


async def test_expiry_is_inclusive_at_deadline(battle_engine, make_user, make_battle, clock):
    creator = await make_user()
    battle = await make_battle(creator, duration_hours=1)

    assert not is_expired(battle, clock.now)
    clock.advance(hours=1)
    assert is_expired(battle, clock.now)
    assert needs_closing(battle, clock.now)


async def test_claim_closing_succeeds_only_once(db, make_user, make_battle, clock):
    creator = await make_user()
    battle = await make_battle(creator)

    await claim_closing(db, battle.id, clock.now)
    await db.commit()

    with pytest.raises(Conflict):
        await claim_closing(db, battle.id, clock.now)
    await db.rollback()
