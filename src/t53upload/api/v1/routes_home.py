"""Plain-text helper endpoints used by upload clients and crawlers."""

import time

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()

# .NET ticks (100 ns) between 0001-01-01 and the Unix epoch
_UNIX_EPOCH_TICKS = 621_355_968_000_000_000

ROBOTS_TXT = "User-agent: *\nDisallow: /"


def utc_ticks(now_ns: int | None = None) -> int:
    """Current UTC time as 100 ns ticks since 0001-01-01."""
    if now_ns is None:
        now_ns = time.time_ns()
    return _UNIX_EPOCH_TICKS + now_ns // 100


@router.get("/robots.txt", response_class=PlainTextResponse)
async def robots_txt() -> str:
    # Nothing here is worth indexing
    return ROBOTS_TXT


@router.get("/datetime.txt", response_class=PlainTextResponse)
async def datetime_txt() -> str:
    """Server clock, so clients can check theirs before generating a key."""
    return str(utc_ticks())
