import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from urllib.parse import urlencode

from models import ShareCard, UserStats


ONE_DAY_MS = 24 * 60 * 60 * 1000

_RAW_ADDRESS = re.compile(r"^0x[a-f0-9]{40}$")


def is_raw_address(text: str) -> bool:
    """True for a literal 0x + 40 hex address, any case, surrounding whitespace ignored."""
    return bool(_RAW_ADDRESS.match(text.strip().lower()))


def utc_midnight_ms(timestamp_ms: int) -> int:
    """Epoch ms of 00:00:00 UTC on the day containing ``timestamp_ms``."""
    return timestamp_ms - timestamp_ms % ONE_DAY_MS


def ms_to_utc_date(timestamp_ms: int) -> date:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).date()


def datetime_to_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        raise ValueError("naive datetime; pass an aware UTC instant")
    return int(moment.timestamp() * 1000)


def format_ether(wei: int, places: int = 4) -> str:
    """Exact wei -> ETH decimal string, rounded half-up to ``places``."""
    quantum = Decimal(1).scaleb(-places)
    ether = Decimal(wei).scaleb(-18).quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{ether:.{places}f}"


def build_share_card(name: str, stats: UserStats) -> ShareCard:
    return ShareCard(
        name=name,
        tx=str(stats.total_transactions),
        gas=stats.total_gas_paid,
        contracts=str(stats.contracts_deployed),
        streak=str(stats.current_streak),
        active=str(stats.unique_days_active),
    )


def build_share_url(host: str, card: ShareCard, timestamp_ms: int) -> str:
    # ``t`` busts frame/image caches on every share
    query = urlencode({
        "name": card.name,
        "tx": card.tx,
        "gas": card.gas,
        "contracts": card.contracts,
        "t": timestamp_ms,
    })
    return f"{host.rstrip('/')}/share?{query}"
