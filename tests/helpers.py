from datetime import datetime, timezone

import httpx

from models import TransactionRecord
from utils import ONE_DAY_MS


NOW = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)
TODAY_MS = int(datetime(2026, 10, 19, tzinfo=timezone.utc).timestamp() * 1000)

ADDRESS = "0x" + "ab" * 20

def day_ms(offset: int) -> int:
    """UTC midnight ``offset`` days from today."""
    return TODAY_MS + offset * ONE_DAY_MS

def ts(offset: int, hour: int = 12) -> int:
    """Unix seconds at ``hour`` UTC, ``offset`` days from today."""
    return (day_ms(offset) + hour * 3600 * 1000) // 1000

def explorer_row(**overrides) -> dict:
    row = {
        "timeStamp": str(ts(0)),
        "hash": "0x" + "11" * 32,
        "from": ADDRESS,
        "to": "0x" + "22" * 20,
        "functionName": "",
        "isError": "0",
        "contractAddress": "",
        "gasUsed": "21000",
        "gasPrice": "1000000000",
    }
    row.update(overrides)
    return row

def make_tx(**overrides) -> TransactionRecord:
    return TransactionRecord.model_validate(explorer_row(**overrides))

class SleepRecorder:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
