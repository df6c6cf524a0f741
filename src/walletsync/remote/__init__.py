"""Remote banking API adapters."""

from walletsync.remote.base import BankClient
from walletsync.remote.monobank import MonobankClient

__all__ = ["BankClient", "MonobankClient"]
