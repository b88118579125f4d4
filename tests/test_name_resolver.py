import pytest

from name_resolver import NameResolver


RESOLVED = "0x" + "cd" * 20


class FakeENS:
    def __init__(self, result=RESOLVED, error: Exception | None = None):
        self.result = result
        self.error = error
        self.lookups: list[str] = []

    async def address(self, name: str):
        self.lookups.append(name)
        if self.error:
            raise self.error
        return self.result


class TestNameResolver:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        "0x" + "ab" * 20,
        "0x" + "AB" * 20,
        "  0xAbCdEf0123456789aBcDeF0123456789AbCdEf01  ",
    ])
    async def test_raw_address_rejected_without_lookup(self, raw):
        ens = FakeENS()

        assert await NameResolver(ens).resolve(raw) is None
        assert ens.lookups == []

    @pytest.mark.asyncio
    async def test_default_suffix_appended(self):
        ens = FakeENS()

        assert await NameResolver(ens).resolve("jesse") == RESOLVED
        assert ens.lookups == ["jesse.base.eth"]

    @pytest.mark.asyncio
    async def test_dotted_name_kept_and_normalized(self):
        ens = FakeENS()

        await NameResolver(ens).resolve("  Vitalik.ETH ")

        assert ens.lookups == ["vitalik.eth"]

    @pytest.mark.asyncio
    async def test_custom_suffix(self):
        ens = FakeENS()

        await NameResolver(ens, default_suffix=".eth").resolve("nick")

        assert ens.lookups == ["nick.eth"]

    @pytest.mark.asyncio
    async def test_short_hex_is_treated_as_name(self):
        ens = FakeENS()

        await NameResolver(ens).resolve("0x1234")

        assert ens.lookups == ["0x1234.base.eth"]

    @pytest.mark.asyncio
    async def test_unresolved_name_returns_none(self):
        ens = FakeENS(result=None)

        assert await NameResolver(ens).resolve("nobody") is None

    @pytest.mark.asyncio
    async def test_lookup_error_returns_none(self, caplog):
        ens = FakeENS(error=RuntimeError("rpc down"))

        assert await NameResolver(ens).resolve("jesse") is None
        failures = [r for r in caplog.records if r.getMessage() == "name_resolution_failed"]
        assert failures and failures[0].fields["name"] == "jesse.base.eth"
