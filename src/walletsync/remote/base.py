"""Abstract remote banking API interface."""

from abc import ABC, abstractmethod

from walletsync.remote.models import ClientInfo, CurrencyRate, StatementItem


class BankClient(ABC):
    """Remote banking API used by the sync core."""

    @abstractmethod
    async def get_client_info(self) -> ClientInfo:
        """Fetch the client profile with all of its accounts."""
        pass

    @abstractmethod
    async def get_statement(
        self, account_id: str, from_time: int, to_time: int
    ) -> list[StatementItem]:
        """Fetch statement items of one account between two Unix timestamps."""
        pass

    @abstractmethod
    async def get_currency_rates(self) -> list[CurrencyRate]:
        """Fetch the public currency rate table."""
        pass
