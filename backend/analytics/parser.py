import io
import json
from typing import List

import pandas as pd

from .trades import CONTRACT_TYPES, TRENDS, VOLATILITIES, MarketContext, Trade

REQUIRED_COLUMNS = [
    "transaction_id",
    "purchase_time",
    "sell_time",
    "buy_price",
    "sell_price",
    "profit",
    "contract_type",
]

OPTIONAL_DEFAULTS = {
    "contract_id": 0,
    "underlying_symbol": "",
    "underlying_name": "",
    "duration": "",
    "payout": 0.0,
    "trend": "sideways",
    "volatility": "medium",
    "description": "",
}

NUMERIC_COLUMNS = ["purchase_time", "sell_time", "buy_price", "sell_price", "profit"]


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize common column name variants to our required schema."""
    colmap = {c: str(c).strip().lower() for c in df.columns}
    df = df.rename(columns=colmap)

    # common synonyms
    synonyms = {
        "id": "transaction_id",
        "trade_id": "transaction_id",
        "entry_time": "purchase_time",
        "open_time": "purchase_time",
        "exit_time": "sell_time",
        "close_time": "sell_time",
        "stake": "buy_price",
        "p/l": "profit",
        "pnl": "profit",
        "profit_loss": "profit",
        "symbol": "underlying_symbol",
        "asset": "underlying_name",
        "instrument": "underlying_name",
        "type": "contract_type",
        "direction": "contract_type",
        "market_trend": "trend",
        "context": "description",
        "market_context.trend": "trend",
        "market_context.volatility": "volatility",
        "market_context.description": "description",
    }
    df = df.rename(columns={k: v for k, v in synonyms.items() if k in df.columns and v not in df.columns})

    return df


def parse_trade_file(uploaded_file) -> pd.DataFrame:
    """Parse an uploaded CSV/JSON/Excel file into a normalized DataFrame.

    Supported:
    - .csv
    - .json (list of records; a nested market_context is flattened)
    - .xlsx, .xls
    """
    name = getattr(uploaded_file, "name", "").lower()
    content = uploaded_file.read()

    if name.endswith(".csv"):
        df = pd.read_csv(io.BytesIO(content))
    elif name.endswith(".json"):
        df = pd.json_normalize(json.loads(content))
    elif name.endswith(".xlsx") or name.endswith(".xls"):
        df = pd.read_excel(io.BytesIO(content))
    else:
        raise ValueError("Unsupported file type. Please upload CSV, JSON or Excel.")

    df = normalize_columns(df)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}. Expected: {REQUIRED_COLUMNS}")

    for c, default in OPTIONAL_DEFAULTS.items():
        if c not in df.columns:
            df[c] = default
        df[c] = df[c].fillna(default)

    # Type conversions
    df["transaction_id"] = df["transaction_id"].astype(str).str.strip()
    df["contract_type"] = df["contract_type"].astype(str).str.upper().str.strip()
    df["trend"] = df["trend"].astype(str).str.lower().str.strip()
    df["volatility"] = df["volatility"].astype(str).str.lower().str.strip()
    for c in ["underlying_symbol", "underlying_name", "duration", "description"]:
        df[c] = df[c].astype(str).str.strip()

    for c in NUMERIC_COLUMNS + ["payout", "contract_id"]:
        df[c] = pd.to_numeric(df[c], errors="coerce")

    df = df.dropna(subset=NUMERIC_COLUMNS)
    df = df[df["contract_type"].isin(CONTRACT_TYPES)].copy()
    df["trend"] = df["trend"].where(df["trend"].isin(TRENDS), OPTIONAL_DEFAULTS["trend"])
    df["volatility"] = df["volatility"].where(df["volatility"].isin(VOLATILITIES), OPTIONAL_DEFAULTS["volatility"])
    df["payout"] = df["payout"].fillna(0.0)
    df["contract_id"] = df["contract_id"].fillna(0).astype(int)

    # Sort for time-series analysis
    df = df.sort_values("purchase_time", kind="stable").reset_index(drop=True)
    return df


def frame_to_trades(df: pd.DataFrame) -> List[Trade]:
    trades = []
    for row in df.to_dict(orient="records"):
        trades.append(
            Trade(
                transaction_id=str(row["transaction_id"]),
                contract_id=int(row.get("contract_id", 0)),
                purchase_time=int(row["purchase_time"]),
                sell_time=int(row["sell_time"]),
                buy_price=float(row["buy_price"]),
                sell_price=float(row["sell_price"]),
                profit=float(row["profit"]),
                underlying_symbol=str(row.get("underlying_symbol", "")),
                underlying_name=str(row.get("underlying_name", "")),
                contract_type=str(row["contract_type"]),
                duration=str(row.get("duration", "")),
                payout=float(row.get("payout", 0.0)),
                market_context=MarketContext(
                    trend=str(row.get("trend", "sideways")),
                    volatility=str(row.get("volatility", "medium")),
                    description=str(row.get("description", "")),
                ),
            )
        )
    return trades
