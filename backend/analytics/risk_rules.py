from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

import pandas as pd

from .features import WINDOW_SIZE, add_features, recent_window, trades_frame
from .recommendations import tips_for
from .scoring import clamp, risk_level

# ---------------------------------------------------------------------
# Risk scoring is RULE-BASED (additive, deterministic, explainable).
# Only the last 10 trades count. Patterns detected:
# - Martingale (stake escalation right after a loss)
# - High loss rate
# - Oversized single stake
# - Revenge trading (quick re-entry after a loss)
# Every hit adds to a baseline of 50; the total is clamped to [0, 100].
# ---------------------------------------------------------------------

BASELINE = 50

MARTINGALE_RATIO = 1.5
MARTINGALE_POINTS = 15

LOSS_RATE_HIGH = 0.7
LOSS_RATE_HIGH_POINTS = 15
LOSS_RATE_WARN = 0.5
LOSS_RATE_WARN_POINTS = 5

OUTLIER_STAKE_RATIO = 3.0
OUTLIER_STAKE_POINTS = 10

REVENGE_GAP_SECONDS = 300
REVENGE_POINTS = 5


@dataclass
class RiskResult:
    score: int
    level: str
    signals: List[Dict[str, Any]]
    tips: List[str]


def assess_risk(trades: Iterable[Any] | pd.DataFrame) -> RiskResult:
    """Score the recent trade window and explain which rules fired."""
    d = recent_window(trades_frame(trades), WINDOW_SIZE)
    if d.empty:
        return RiskResult(
            score=BASELINE,
            level=risk_level(BASELINE),
            signals=[{"msg": "No trades to assess yet."}],
            tips=[],
        )

    d = add_features(d)
    score = float(BASELINE)
    fired: List[str] = []

    # 1) martingale: one hit per qualifying adjacent pair, not capped
    martingale = d["after_loss"] & (d["buy_price"] >= d["prev_buy_price"] * MARTINGALE_RATIO)
    martingale_hits = int(martingale.sum())
    if martingale_hits:
        score += martingale_hits * MARTINGALE_POINTS
        fired.append("martingale")

    # 2) loss rate: only the higher bucket applies
    loss_rate = float(d["is_loss"].sum()) / len(d)
    if loss_rate > LOSS_RATE_HIGH:
        score += LOSS_RATE_HIGH_POINTS
        fired.append("loss_rate")
    elif loss_rate > LOSS_RATE_WARN:
        score += LOSS_RATE_WARN_POINTS
        fired.append("loss_rate")

    # 3) oversized stake: applies once however many outliers exist
    avg_stake = float(d["buy_price"].mean())
    max_stake = float(d["buy_price"].max())
    if max_stake > avg_stake * OUTLIER_STAKE_RATIO:
        score += OUTLIER_STAKE_POINTS
        fired.append("oversized_stake")

    # 4) revenge trading: one hit per quick re-entry after a loss
    revenge = d["after_loss"] & (d["reentry_gap"] < REVENGE_GAP_SECONDS)
    revenge_hits = int(revenge.sum())
    if revenge_hits:
        score += revenge_hits * REVENGE_POINTS
        fired.append("revenge_trading")

    final = int(clamp(score))

    signals = [
        {"metric": "window_size", "value": int(len(d))},
        {"metric": "martingale_hits", "value": martingale_hits},
        {"metric": "loss_rate", "value": round(loss_rate, 3)},
        {"metric": "avg_stake", "value": round(avg_stake, 2)},
        {"metric": "max_stake", "value": round(max_stake, 2)},
        {"metric": "revenge_hits_<5min", "value": revenge_hits},
    ]

    return RiskResult(score=final, level=risk_level(final), signals=signals, tips=tips_for(fired))


def compute_risk_score(trades: Iterable[Any] | pd.DataFrame) -> int:
    """Return the 0-100 risk score of the most recent 10 trades (50 when empty)."""
    return assess_risk(trades).score
