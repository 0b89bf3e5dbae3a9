from __future__ import annotations

from datetime import date, datetime


def now_local_iso() -> str:
    return datetime.now().astimezone().replace(microsecond=0).isoformat()


def local_today() -> date:
    return datetime.now().astimezone().date()
