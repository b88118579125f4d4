import pytest
from fastapi.testclient import TestClient

import main
from chain_providers import FetchError
from models import UserStats


ADDRESS = "0x" + "cd" * 20


class FakeResolver:
    def __init__(self, address=ADDRESS):
        self.address = address
        self.names: list[str] = []

    async def resolve(self, name: str):
        self.names.append(name)
        return self.address


class FakeAnalyzer:
    def __init__(self, stats=None, error: Exception | None = None):
        self.stats = stats or UserStats(
            total_transactions=12, current_streak=3, contracts_deployed=1,
            unique_days_active=8, total_gas_paid="0.0042",
        )
        self.error = error
        self.addresses: list[str] = []

    async def analyze(self, address: str) -> UserStats:
        self.addresses.append(address)
        if self.error:
            raise self.error
        return self.stats


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "resolver", FakeResolver())
    monkeypatch.setattr(main, "analyzer", FakeAnalyzer())
    # No context manager: lifespan would replace the fakes with real clients
    return TestClient(main.app)


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": main.VERSION}


def test_stats_success(client):
    resp = client.post("/stats", json={"name": "jesse"})

    body = resp.json()
    assert resp.status_code == 200
    assert body["success"] is True
    report = body["report"]
    assert report["address"] == ADDRESS
    assert report["stats"]["total_transactions"] == 12
    assert report["card"] == {
        "name": "jesse", "tx": "12", "gas": "0.0042",
        "contracts": "1", "streak": "3", "active": "8",
    }
    assert "/share?name=jesse&tx=12&gas=0.0042&contracts=1" in report["share_url"]
    assert main.analyzer.addresses == [ADDRESS]


def test_raw_address_rejected(client):
    resp = client.post("/stats", json={"name": "0x" + "AB" * 20})

    assert resp.status_code == 422
    assert resp.json()["detail"] == main.RAW_ADDRESS_MESSAGE
    assert main.resolver.names == []


def test_unresolved_name_is_generic_failure(client, monkeypatch):
    monkeypatch.setattr(main, "resolver", FakeResolver(address=None))

    body = client.post("/stats", json={"name": "nobody"}).json()

    assert body["success"] is False
    assert body["error"] == main.RETRY_MESSAGE
    assert main.analyzer.addresses == []


def test_fetch_failure_is_generic_failure(client, monkeypatch):
    error = FetchError("https://eth.example/api?address=0x", 8, "HTTP Status 503")
    monkeypatch.setattr(main, "analyzer", FakeAnalyzer(error=error))

    body = client.post("/stats", json={"name": "jesse"}).json()

    assert body["success"] is False
    assert body["error"] == main.RETRY_MESSAGE
    assert "eth.example" not in body["error"]


def test_csv_export(client):
    resp = client.post("/stats?format=csv", json={"name": "jesse.base.eth"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert 'filename="jesse_base_eth_stats.csv"' in resp.headers["content-disposition"]
    assert "Total Gas Paid (ETH),0.0042" in resp.text


def test_get_by_name(client):
    body = client.get("/stats/jesse.base.eth").json()

    assert body["success"] is True
    assert main.resolver.names == ["jesse.base.eth"]


# ── MCP ───────────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_mcp_tool_returns_report(monkeypatch):
    monkeypatch.setattr(main, "resolver", FakeResolver())
    monkeypatch.setattr(main, "analyzer", FakeAnalyzer())

    report = await main.basename_stats("jesse")

    assert report["address"] == ADDRESS
    assert report["stats"]["total_gas_paid"] == "0.0042"
    assert report["card"]["streak"] == "3"
    assert report["share_url"].startswith(main.settings.public_host.rstrip("/"))


@pytest.mark.asyncio
async def test_mcp_tool_refuses_raw_address(monkeypatch):
    resolver = FakeResolver()
    monkeypatch.setattr(main, "resolver", resolver)

    with pytest.raises(ValueError, match="not a raw address"):
        await main.basename_stats("0x" + "ab" * 20)

    assert resolver.names == []


def test_mcp_endpoint_initializes(monkeypatch):
    # The lifespan rebinds these; monkeypatch restores them afterwards
    monkeypatch.setattr(main, "resolver", None)
    monkeypatch.setattr(main, "analyzer", None)
    payload = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "initialize",
        "params": {
            "protocolVersion": "2025-03-26",
            "capabilities": {},
            "clientInfo": {"name": "stats-tests", "version": "0"},
        },
    }

    with TestClient(main.app) as client:
        resp = client.post(
            "/mcp/mcp",
            json=payload,
            headers={"Accept": "application/json, text/event-stream"},
        )

    assert resp.status_code == 200
    assert "Base Activity Stats" in resp.text
