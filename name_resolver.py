import logging
from typing import Any, Optional, Protocol

from web3 import AsyncHTTPProvider, AsyncWeb3

from config import Settings
from logger import get_logger, log_event
from utils import is_raw_address


logger = get_logger(__name__)


class AddressLookup(Protocol):
    """The slice of web3.py's ``AsyncENS`` the resolver needs."""

    async def address(self, name: str) -> Optional[str]:
        ...


class NameResolver:
    """Basename -> address. Raw 0x addresses are refused, not resolved."""

    def __init__(self, ens: AddressLookup, default_suffix: str = ".base.eth"):
        self.ens = ens
        self.default_suffix = default_suffix

    @classmethod
    def from_settings(cls, settings: Settings) -> "NameResolver":
        w3 = AsyncWeb3(AsyncHTTPProvider(settings.eth_rpc_url))
        return cls(w3.ens, default_suffix=settings.basename_suffix)

    def normalize(self, name: str) -> str:
        name = name.strip().lower()
        if "." not in name:
            name += self.default_suffix
        return name

    async def resolve(self, name: str) -> Optional[str]:
        if is_raw_address(name):
            return None

        full_name = self.normalize(name)
        try:
            address: Any = await self.ens.address(full_name)
        except Exception as e:
            # web3 raises a wide range of errors here (RPC, CCIP-read, name validation)
            log_event(logger, "name_resolution_failed", {
                "name": full_name,
                "error": f"{type(e).__name__}: {e}",
            }, level=logging.WARNING)
            return None

        return str(address) if address else None
