"""Daily scan cooldown derived from a customer's last accepted scan.

Eligibility returns at the first local midnight after ``last_scan_at``. The
same derivation backs both the scan gate and the countdown shown to users, so
the two never disagree.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone, tzinfo

from stampcard_api.core.settings import settings
from stampcard_api.models.user import User, UserRoleEnum


@dataclass(frozen=True, slots=True)
class CooldownState:
    can_scan: bool
    remaining: timedelta
    next_eligible_at: datetime | None
    last_scan_at: datetime | None

    @property
    def hours_remaining(self) -> int:
        if self.can_scan:
            return 0
        return math.ceil(self.remaining.total_seconds() / 3600)

    @property
    def remaining_label(self) -> str | None:
        if self.can_scan:
            return None
        seconds = int(self.remaining.total_seconds())
        hours, rest = divmod(seconds, 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{hours}h {minutes}m {seconds}s"


def ensure_aware(value: datetime) -> datetime:
    """Treat naive timestamps (SQLite round-trips) as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def next_local_midnight(moment: datetime, tz: tzinfo) -> datetime:
    local_day = ensure_aware(moment).astimezone(tz).date()
    return datetime.combine(local_day + timedelta(days=1), time.min, tzinfo=tz)


def derive_cooldown(
    last_scan_at: datetime | None,
    now: datetime,
    tz: tzinfo | None = None,
) -> CooldownState:
    """Return whether a scan is allowed at ``now`` and how long until it is."""

    if last_scan_at is None:
        return CooldownState(can_scan=True, remaining=timedelta(0), next_eligible_at=None, last_scan_at=None)

    zone = tz or settings.cooldown_zone
    last_scan_at = ensure_aware(last_scan_at)
    now = ensure_aware(now)

    next_eligible_at = next_local_midnight(last_scan_at, zone)
    if now >= next_eligible_at:
        return CooldownState(
            can_scan=True,
            remaining=timedelta(0),
            next_eligible_at=None,
            last_scan_at=last_scan_at,
        )

    return CooldownState(
        can_scan=False,
        remaining=next_eligible_at - now,
        next_eligible_at=next_eligible_at,
        last_scan_at=last_scan_at,
    )


def cooldown_for_user(user: User, now: datetime, tz: tzinfo | None = None) -> CooldownState:
    """Cooldown applies to customers only; staff may always be scanned."""

    if user.role != UserRoleEnum.CUSTOMER.value:
        return CooldownState(
            can_scan=True,
            remaining=timedelta(0),
            next_eligible_at=None,
            last_scan_at=ensure_aware(user.last_scan_at) if user.last_scan_at else None,
        )
    return derive_cooldown(user.last_scan_at, now, tz)
