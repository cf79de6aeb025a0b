from __future__ import annotations

from dataclasses import dataclass, field

TRENDS = ("bullish", "bearish", "sideways")
VOLATILITIES = ("low", "medium", "high")
CONTRACT_TYPES = ("CALL", "PUT")


@dataclass(frozen=True)
class MarketContext:
    trend: str = "sideways"
    volatility: str = "medium"
    description: str = ""


@dataclass(frozen=True)
class Trade:
    """One completed contract.

    Times are epoch seconds, `buy_price` is the stake and `profit` is signed
    (positive = win). Records are owned by the caller and never mutated.
    """
    transaction_id: str
    purchase_time: int
    sell_time: int
    buy_price: float
    sell_price: float
    profit: float
    underlying_symbol: str = ""
    underlying_name: str = ""
    contract_type: str = "CALL"
    duration: str = ""
    payout: float = 0.0
    contract_id: int = 0
    market_context: MarketContext = field(default_factory=MarketContext)

    @property
    def is_win(self) -> bool:
        return self.profit > 0

    @property
    def is_loss(self) -> bool:
        return self.profit < 0
