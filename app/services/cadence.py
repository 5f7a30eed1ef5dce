"""Update-interval tier → expected sample spacing.

This table is the single source of tier semantics; ingest warnings,
liveness checks and the seed script all read it.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from app.models.enums import UpdateIntervalEnum

UPDATE_INTERVAL_GAPS: dict[UpdateIntervalEnum, timedelta] = {
	UpdateIntervalEnum.HIGH: timedelta(minutes=1),
	UpdateIntervalEnum.NORMAL: timedelta(minutes=5),
	UpdateIntervalEnum.LOW: timedelta(minutes=25),
}

DEFAULT_UPDATE_INTERVAL = UpdateIntervalEnum.NORMAL


def expected_gap(interval: UpdateIntervalEnum | str) -> timedelta:
	return UPDATE_INTERVAL_GAPS[UpdateIntervalEnum(interval)]


def gap_exceeds_cadence(
	previous: datetime,
	current: datetime,
	interval: UpdateIntervalEnum | str,
	tolerance_factor: float,
) -> bool:
	"""True when ``current - previous`` is longer than ``tolerance_factor`` expected gaps."""
	return (current - previous) > expected_gap(interval) * tolerance_factor


def is_silent(
	last_reading_at: datetime | None,
	interval: UpdateIntervalEnum | str,
	now: datetime,
	tolerance_factor: float,
) -> bool:
	"""A device that never reported, or missed too many samples, is silent."""
	if last_reading_at is None:
		return True
	return gap_exceeds_cadence(last_reading_at, now, interval, tolerance_factor)
