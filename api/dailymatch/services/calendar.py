from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from ..config import MATCH_UTC_OFFSET_HOURS, SWEEP_HOUR_UTC, SWEEP_MINUTE_UTC

MATCH_TZ = timezone(timedelta(hours=MATCH_UTC_OFFSET_HOURS))


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


SYSTEM_CLOCK = SystemClock()


def get_day_key(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(MATCH_TZ).date().isoformat()


def today(clock=SYSTEM_CLOCK) -> str:
    return get_day_key(clock.now())


def previous_day_key(day_key: str) -> str:
    return (date.fromisoformat(day_key) - timedelta(days=1)).isoformat()


def next_day_key(day_key: str) -> str:
    return (date.fromisoformat(day_key) + timedelta(days=1)).isoformat()


def day_start(day_key: str) -> datetime:
    """UTC instant at which ``day_key`` begins in the match timezone."""
    local = datetime.combine(date.fromisoformat(day_key), datetime.min.time(), tzinfo=MATCH_TZ)
    return local.astimezone(timezone.utc)


def seconds_until_day_end(day_key: str, now: datetime) -> int:
    end = day_start(next_day_key(day_key))
    return max(0, int((end - now).total_seconds()))


def next_sweep_at(now: datetime) -> datetime:
    now = now.astimezone(timezone.utc)
    candidate = now.replace(hour=SWEEP_HOUR_UTC, minute=SWEEP_MINUTE_UTC, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def epoch_ms(now: datetime) -> int:
    return int(now.timestamp() * 1000)
