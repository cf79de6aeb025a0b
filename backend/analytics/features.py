"""Feature engineering over a trade window.

Kept separate from the rules so the window and adjacency columns can be
tested on their own.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable

import numpy as np
import pandas as pd

FRAME_COLUMNS = [
    "transaction_id",
    "purchase_time",
    "sell_time",
    "buy_price",
    "sell_price",
    "profit",
]
NUMERIC_COLUMNS = ["purchase_time", "sell_time", "buy_price", "sell_price", "profit"]

WINDOW_SIZE = 10


def _field(trade: Any, name: str) -> Any:
    if isinstance(trade, Mapping):
        return trade.get(name, np.nan)
    return getattr(trade, name, np.nan)


def trades_frame(trades: Iterable[Any] | pd.DataFrame) -> pd.DataFrame:
    """Build a DataFrame from Trade records or plain mappings.

    Missing fields become NaN, which makes every comparison on them false.
    Row order is the caller's order.
    """
    if isinstance(trades, pd.DataFrame):
        out = trades.reset_index(drop=True).copy()
        for c in FRAME_COLUMNS:
            if c not in out.columns:
                out[c] = np.nan
    else:
        rows = [{c: _field(t, c) for c in FRAME_COLUMNS} for t in trades]
        out = pd.DataFrame.from_records(rows, columns=FRAME_COLUMNS)

    for c in NUMERIC_COLUMNS:
        out[c] = pd.to_numeric(out[c], errors="coerce")
    return out


def recent_window(df: pd.DataFrame, size: int = WINDOW_SIZE) -> pd.DataFrame:
    return df.tail(size).reset_index(drop=True)


def add_features(df: pd.DataFrame) -> pd.DataFrame:
    """Add the previous-trade columns the risk rules compare against."""
    out = df.copy()
    out["prev_profit"] = out["profit"].shift(1)
    out["prev_buy_price"] = out["buy_price"].shift(1)
    out["is_loss"] = out["profit"] < 0
    # first row has no predecessor: NaN < 0 is False
    out["after_loss"] = out["prev_profit"] < 0
    out["reentry_gap"] = out["purchase_time"] - out["sell_time"].shift(1)
    return out
