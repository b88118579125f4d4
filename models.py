from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Enums ─────────────────────────────────────────────────────────────────────


class Category(str, Enum):
    SWAP = "swap"
    BRIDGE = "bridge"
    DEFI = "defi"
    NAMING = "naming"
    DEPLOYMENT = "deployment"


# ── Core Data Models ──────────────────────────────────────────────────────────


def _parse_wei(value) -> Optional[int]:
    # Explorers send decimal strings; some L2 fee fields come back as hex
    if value is None or value == "":
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


class TransactionRecord(BaseModel):
    """One explorer row, external transaction or internal transfer."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: int = Field(alias="timeStamp")
    hash: str = ""
    from_address: str = Field("", alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    function_name: Optional[str] = Field(None, alias="functionName")
    is_error: bool = Field(True, alias="isError")
    contract_address: Optional[str] = Field(None, alias="contractAddress")
    gas_used: Optional[int] = Field(None, alias="gasUsed")
    gas_price: Optional[int] = Field(None, alias="gasPrice")
    l1_fees_paid: Optional[int] = Field(None, alias="l1FeesPaid")

    @field_validator("is_error", mode="before")
    @classmethod
    def _is_error(cls, v) -> bool:
        if isinstance(v, bool):
            return v
        # Only an explicit "0" marks a successful execution
        return str(v) != "0"

    @field_validator("gas_used", "gas_price", "l1_fees_paid", mode="before")
    @classmethod
    def _wei(cls, v) -> Optional[int]:
        return _parse_wei(v)

    @property
    def creates_contract(self) -> bool:
        return not self.to_address or bool(self.contract_address)


class UserStats(BaseModel):
    total_transactions: int = 0
    unique_days_active: int = 0
    longest_streak: int = 0
    current_streak: int = 0
    activity_period: int = 0
    token_swaps: int = 0
    bridge_transactions: int = 0
    defi_transactions: int = 0
    ens_interactions: int = 0
    contracts_deployed: int = 0
    internal_transactions: int = 0
    total_gas_paid: str = "0.0000"
    first_active_day: Optional[date] = None
    last_active_day: Optional[date] = None


class ShareCard(BaseModel):
    """Card fields, already formatted for direct display."""

    name: str
    tx: str
    gas: str
    contracts: str
    streak: str
    active: str


class StatsReport(BaseModel):
    name: str
    address: str
    stats: UserStats
    card: ShareCard
    share_url: str


# ── API Models ────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str


class StatsRequest(BaseModel):
    name: str = Field(..., description="Basename, e.g. jesse or jesse.base.eth")


class StatsResponse(BaseModel):
    success: bool
    name: str
    error: Optional[str] = None
    report: Optional[StatsReport] = None
    processing_time_ms: Optional[int] = None
