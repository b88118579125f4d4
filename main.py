import io
import logging
import os
import re
import time
from contextlib import asynccontextmanager
from typing import Literal

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from fastmcp import FastMCP

load_dotenv()

from chain_providers import FetchError
from config import ConfigurationError, Settings
from exports import to_csv, to_excel
from logger import get_logger, log_event
from models import HealthResponse, StatsReport, StatsRequest, StatsResponse
from name_resolver import NameResolver
from utils import build_share_card, build_share_url, is_raw_address
from wallet_analyzer import WalletAnalyzer


VERSION = "1.0.0"

RAW_ADDRESS_MESSAGE = (
    "Please enter a valid Basename (e.g. jesse.base.eth), not a raw address."
)
RETRY_MESSAGE = "Failed to fetch data. Ensure the Basename is valid and try again."

logger = get_logger("basename_stats")


class StatsUnavailable(Exception):
    """Name did not resolve or the explorers could not be read."""


# ── Core pipeline ─────────────────────────────────────────────────────────────


async def build_report(name: str) -> StatsReport:
    address = await resolver.resolve(name)
    if not address:
        log_event(logger, "stats_request_failed", {
            "name": name, "stage": "resolve", "error": "name did not resolve",
        }, level=logging.WARNING)
        raise StatsUnavailable(RETRY_MESSAGE)

    try:
        user_stats = await analyzer.analyze(address)
    except (FetchError, ConfigurationError) as e:
        log_event(logger, "stats_request_failed", {
            "name": name, "address": address, "stage": "aggregate", "error": str(e),
        }, level=logging.ERROR)
        raise StatsUnavailable(RETRY_MESSAGE) from e

    display_name = name.strip()
    card = build_share_card(display_name, user_stats)
    return StatsReport(
        name=display_name,
        address=address,
        stats=user_stats,
        card=card,
        share_url=build_share_url(settings.public_host, card, int(time.time() * 1000)),
    )


# ── MCP Server (mounted at /mcp) ─────────────────────────────────────────────

mcp = FastMCP(
    name="Base Activity Stats",
    instructions=(
        "Looks up a Basename (e.g. jesse.base.eth) and reports its onchain activity "
        "on Base and Ethereum: transaction count, active days, streaks, swaps, bridges, "
        "DeFi and naming interactions, contracts deployed and total gas paid."
    ),
)


async def basename_stats(name: str) -> dict:
    """
    Activity stats for a Basename.

    Args:
        name: Basename such as "jesse" or "jesse.base.eth". Raw 0x addresses are refused.

    Returns:
        Stats report with display-ready share card fields.
    """
    if is_raw_address(name):
        raise ValueError(RAW_ADDRESS_MESSAGE)
    report = await build_report(name)
    return report.model_dump(mode="json")


# Registered by call so basename_stats stays a plain coroutine
mcp.tool()(basename_stats)
mcp_app = mcp.http_app()


# ── Lifespan ──────────────────────────────────────────────────────────────────

settings: Settings = Settings.from_env()
analyzer: WalletAnalyzer | None = None
resolver: NameResolver | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global analyzer, resolver
    analyzer = WalletAnalyzer(settings)
    resolver = NameResolver.from_settings(settings)
    try:
        settings.require_sources()
    except ConfigurationError as e:
        # Keep serving /health; stats requests will fail until configured
        log_event(logger, "config_incomplete", {"error": str(e)}, level=logging.ERROR)
    log_event(logger, "startup", {"version": VERSION})
    async with mcp_app.lifespan(app):
        yield
    log_event(logger, "shutdown", {})


# ── App ───────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Base Activity Stats",
    description=(
        "Onchain activity stats for Basenames. Resolves a Basename, reads its "
        "Base and Ethereum history from block explorers and returns transaction "
        "counts, streaks, categorized activity and gas paid, plus share card fields.\n\n"
        "Exposes **REST** (`/stats`) and **MCP** (`/mcp`) endpoints."
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/mcp", mcp_app)


# ── Info ──────────────────────────────────────────────────────────────────────


@app.get("/", tags=["Info"])
def root(request: Request):
    base = str(request.base_url).rstrip("/")
    return {
        "name": "Base Activity Stats",
        "version": VERSION,
        "endpoints": {
            "docs": f"{base}/docs",
            "health": f"{base}/health",
            "stats": f"{base}/stats",
            "mcp": f"{base}/mcp",
        },
    }


@app.get("/health", response_model=HealthResponse, tags=["Info"])
def health():
    return HealthResponse(status="ok", version=VERSION)


# ── Core: Stats ───────────────────────────────────────────────────────────────


@app.post("/stats", tags=["Stats"])
async def stats(
    req: StatsRequest,
    format: Literal["json", "csv", "excel"] = Query(
        default="json",
        description="Output format: json (default) | csv | excel",
    ),
):
    """
    Activity stats for a Basename.

    Names without a dot get `.base.eth` appended. Raw `0x` addresses are rejected.
    Upstream explorer failures are retried before the request gives up.
    """
    if is_raw_address(req.name):
        raise HTTPException(status_code=422, detail=RAW_ADDRESS_MESSAGE)

    start = time.time()
    try:
        report = await build_report(req.name)
    except StatsUnavailable as e:
        return StatsResponse(
            success=False, name=req.name, error=str(e),
            processing_time_ms=int((time.time() - start) * 1000),
        )

    elapsed = int((time.time() - start) * 1000)
    slug = re.sub(r"[^a-z0-9-]+", "_", report.name.lower())[:32]

    if format == "csv":
        return StreamingResponse(
            content=io.BytesIO(to_csv(report)),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{slug}_stats.csv"'
            },
        )

    if format == "excel":
        return StreamingResponse(
            content=io.BytesIO(to_excel(report)),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={
                "Content-Disposition": f'attachment; filename="{slug}_stats.xlsx"'
            },
        )

    return StatsResponse(
        success=True, name=req.name, report=report, processing_time_ms=elapsed,
    )


@app.get("/stats/{name}", response_model=StatsResponse, tags=["Stats"])
async def stats_by_name(name: str):
    return await stats(StatsRequest(name=name), format="json")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("APP_ENV", "development") == "development",
    )
