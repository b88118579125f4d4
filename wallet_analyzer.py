import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Optional

import httpx
from pydantic import ValidationError

from chain_providers import ExplorerSource, RetryingFetcher, result_rows
from classification import ClassificationRules
from config import Settings
from logger import get_logger, log_event
from models import Category, TransactionRecord, UserStats
from utils import (
    ONE_DAY_MS,
    datetime_to_ms,
    format_ether,
    ms_to_utc_date,
    utc_midnight_ms,
)


logger = get_logger(__name__)


@dataclass(frozen=True)
class Streaks:
    longest: int
    current: int


def active_days(txs: Iterable[TransactionRecord]) -> list[int]:
    """Sorted distinct UTC-midnight instants (epoch ms) of the given transactions."""
    return sorted({utc_midnight_ms(tx.timestamp * 1000) for tx in txs})


def compute_streaks(days: list[int], today_ms: int) -> Streaks:
    """Longest and current run of consecutive UTC days.

    ``days`` must be sorted, distinct UTC-midnight instants. The current
    streak only counts if the last active day is today or yesterday.
    """
    if not days:
        return Streaks(longest=0, current=0)

    longest = 0
    running = 1
    for prev, curr in zip(days, days[1:]):
        # Rounding absorbs leap-second style skew between midnights
        if round((curr - prev) / ONE_DAY_MS) == 1:
            running += 1
        else:
            longest = max(longest, running)
            running = 1
    longest = max(longest, running)

    today = utc_midnight_ms(today_ms)
    current = running if days[-1] in (today, today - ONE_DAY_MS) else 0
    return Streaks(longest=longest, current=current)


def activity_period(days: list[int], today_ms: int) -> int:
    if not days:
        return 0
    return (utc_midnight_ms(today_ms) - days[0]) // ONE_DAY_MS


def total_gas_wei(txs: Iterable[TransactionRecord]) -> int:
    total = 0
    for tx in txs:
        if tx.gas_used is None or tx.gas_price is None:
            continue
        total += tx.gas_used * tx.gas_price
        if tx.l1_fees_paid is not None:
            total += tx.l1_fees_paid
    return total


def parse_records(rows: list[dict], source: str) -> list[TransactionRecord]:
    records: list[TransactionRecord] = []
    for row in rows:
        try:
            records.append(TransactionRecord.model_validate(row))
        except ValidationError as e:
            log_event(logger, "record_skipped", {
                "source": source,
                "hash": row.get("hash"),
                "error_count": e.error_count(),
            }, level=logging.WARNING)
    return records


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WalletAnalyzer:
    """Fetches a wallet's explorer history and reduces it to ``UserStats``."""

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
        rules: Optional[ClassificationRules] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.settings = settings
        self.client = client
        self.rules = rules or ClassificationRules.with_overrides(settings.keyword_overrides)
        self.sleep = sleep
        self.clock = clock

    async def analyze(self, address: str) -> UserStats:
        base_url, eth_url, internal_url = self.settings.require_sources()
        sources = (
            ExplorerSource("base", base_url),
            ExplorerSource("ethereum", eth_url),
            ExplorerSource("base_internal", internal_url),
        )

        if self.client is not None:
            rows = await self._fetch_sources(self.client, sources, address)
        else:
            async with httpx.AsyncClient() as client:
                rows = await self._fetch_sources(client, sources, address)

        base_rows, eth_rows, internal_rows = rows
        external = parse_records(base_rows, "base") + parse_records(eth_rows, "ethereum")
        return self.compute(external, internal_count=len(internal_rows))

    async def _fetch_sources(
        self,
        client: httpx.AsyncClient,
        sources: tuple[ExplorerSource, ...],
        address: str,
    ) -> list[list[dict]]:
        fetcher = RetryingFetcher(
            client,
            max_retries=self.settings.max_retries,
            initial_delay=self.settings.initial_delay,
            timeout=self.settings.request_timeout,
            sleep=self.sleep,
        )

        # Sequential with a pause in between: explorers rate-limit bursts
        results: list[list[dict]] = []
        for i, source in enumerate(sources):
            if i:
                await self.sleep(self.settings.source_pause)
            outcome = await fetcher.fetch(source.url_for(address))
            rows = result_rows(outcome.unwrap())
            log_event(logger, "source_fetched", {
                "source": source.name,
                "outcome": type(outcome).__name__,
                "rows": len(rows),
            }, level=logging.DEBUG)
            results.append(rows)
        return results

    def compute(self, external: list[TransactionRecord], internal_count: int = 0) -> UserStats:
        """Pure reduction of already-fetched records."""
        success = [tx for tx in external if not tx.is_error]
        now_ms = datetime_to_ms(self.clock())

        days = active_days(success)
        streaks = compute_streaks(days, now_ms)
        counts = self.rules.count(success)

        return UserStats(
            total_transactions=len(success),
            unique_days_active=len(days),
            longest_streak=streaks.longest,
            current_streak=streaks.current,
            activity_period=activity_period(days, now_ms),
            token_swaps=counts[Category.SWAP],
            bridge_transactions=counts[Category.BRIDGE],
            defi_transactions=counts[Category.DEFI],
            ens_interactions=counts[Category.NAMING],
            contracts_deployed=counts[Category.DEPLOYMENT],
            internal_transactions=internal_count,
            total_gas_paid=format_ether(total_gas_wei(success)),
            first_active_day=ms_to_utc_date(days[0]) if days else None,
            last_active_day=ms_to_utc_date(days[-1]) if days else None,
        )
