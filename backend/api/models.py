from django.db import models

from analytics.trades import MarketContext, Trade as TradeRecord


class Trade(models.Model):
    """A completed contract imported from a CSV/JSON/Excel upload.

    Notes:
    - Times are epoch seconds, as reported by the broker.
    - `to_record()` hands the engines an immutable copy; they never touch
      the model directly.
    """
    transaction_id = models.CharField(max_length=64, db_index=True)
    contract_id = models.BigIntegerField(default=0)
    purchase_time = models.BigIntegerField(db_index=True)
    sell_time = models.BigIntegerField()
    buy_price = models.FloatField(help_text="Stake paid for the contract")
    sell_price = models.FloatField()
    profit = models.FloatField(help_text="Realized profit (can be negative)")
    underlying_symbol = models.CharField(max_length=50, blank=True, default="")
    underlying_name = models.CharField(max_length=100, blank=True, default="")
    contract_type = models.CharField(max_length=4, choices=[("CALL", "CALL"), ("PUT", "PUT")])
    duration = models.CharField(max_length=32, blank=True, default="")
    payout = models.FloatField(default=0.0)

    trend = models.CharField(
        max_length=8,
        choices=[("bullish", "bullish"), ("bearish", "bearish"), ("sideways", "sideways")],
        default="sideways",
    )
    volatility = models.CharField(
        max_length=6,
        choices=[("low", "low"), ("medium", "medium"), ("high", "high")],
        default="medium",
    )
    context_description = models.TextField(blank=True, default="")

    # Optional: group imports (useful if user uploads multiple files)
    batch_id = models.CharField(max_length=64, db_index=True, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.transaction_id} {self.contract_type} {self.underlying_symbol} profit={self.profit}"

    def to_record(self) -> TradeRecord:
        return TradeRecord(
            transaction_id=self.transaction_id,
            contract_id=self.contract_id,
            purchase_time=self.purchase_time,
            sell_time=self.sell_time,
            buy_price=self.buy_price,
            sell_price=self.sell_price,
            profit=self.profit,
            underlying_symbol=self.underlying_symbol,
            underlying_name=self.underlying_name,
            contract_type=self.contract_type,
            duration=self.duration,
            payout=self.payout,
            market_context=MarketContext(
                trend=self.trend,
                volatility=self.volatility,
                description=self.context_description,
            ),
        )
