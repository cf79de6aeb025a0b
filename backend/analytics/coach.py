"""Tiny 'coach': an offline trade reviewer plus a one-line coaching message.

No LLM needed (rules only) -> fast + deterministic. The review picked for a
trade depends only on its outcome, stake, direction and market trend.
"""
from __future__ import annotations

from dataclasses import dataclass

from .scoring import risk_level
from .trades import Trade

BIG_STAKE = 20


@dataclass(frozen=True)
class TradeAnalysis:
    verdict: str
    mistake: str
    lesson: str
    action: str
    risk_score: int
    concept_id: str


MOCK_REVIEWS = {
    "win_default": dict(
        mistake="Traded with the trend in a calm market; the entry matched the momentum.",
        lesson=(
            "You read the direction correctly and picked the matching contract. "
            "The win came from a repeatable process, not luck; the challenge is doing it again."
        ),
        action="Log this setup in a journal and compare your next entry against it.",
        risk_score=22,
        concept_id="risk_management",
    ),
    "loss_psychology": dict(
        mistake="Raised the stake right after a loss to win it back (martingale behavior).",
        lesson=(
            "Doubling up after a loss is revenge trading. It grows the damage of a losing "
            "streak instead of limiting it; professionals cut size while their edge is cold."
        ),
        action="After 2 consecutive losses take a 15-minute break, and never raise the stake after a loss.",
        risk_score=91,
        concept_id="psychology",
    ),
    "loss_ranging": dict(
        mistake="Took a directional trade in a sideways market with no visible trend.",
        lesson=(
            "In a range, price bounces between a ceiling and a floor, so a CALL/PUT bet is "
            "close to a coin flip. A momentum gauge near its midpoint means there is no edge."
        ),
        action="If you cannot draw the trend line in a few seconds, skip the trade.",
        risk_score=58,
        concept_id="timing",
    ),
    "loss_noconfirm": dict(
        mistake="Bet PUT against a strong bullish move with no confirming signal.",
        lesson=(
            "Trading against a clear trend needs secondary evidence, such as an overbought "
            "reading or a reversal candle at resistance. Without it you are guessing."
        ),
        action="Require at least one indicator or candle pattern confirming the direction before entering.",
        risk_score=68,
        concept_id="entry_signals",
    ),
    "loss_countertrend": dict(
        mistake="Entered against a fast trend; every signal pointed the other way.",
        lesson=(
            "Fighting momentum is a trap: the move has to exhaust itself before a reversal. "
            "Wait for exhaustion at a support or resistance level before betting against it."
        ),
        action="Check the last 5 candles: if they make lower lows, only trade PUT or stay out.",
        risk_score=82,
        concept_id="trend_analysis",
    ),
}


def _pick_review(trade: Trade) -> str:
    trend = trade.market_context.trend.lower()
    if trade.profit > 0:
        return "win_default"
    if trade.buy_price >= BIG_STAKE:
        return "loss_psychology"
    if trend == "sideways":
        return "loss_ranging"
    if trend == "bullish" and trade.contract_type == "PUT":
        return "loss_noconfirm"
    return "loss_countertrend"


def mock_analysis(trade: Trade) -> TradeAnalysis:
    review = MOCK_REVIEWS[_pick_review(trade)]
    return TradeAnalysis(verdict="WIN" if trade.profit > 0 else "LOSS", **review)


def coaching_message(risk_score: int, trading_iq: int) -> str:
    level = risk_level(risk_score)

    if level == "CRITICAL":
        return (
            f"Your risk is CRITICAL (score {risk_score}). Stop for today: "
            "you are chasing losses with bigger stakes."
        )
    if level == "HIGH":
        return (
            f"Your risk is HIGH (score {risk_score}). Keep stakes flat "
            "and take a break after every loss."
        )
    if level == "MODERATE":
        return (
            f"Your risk is MODERATE (score {risk_score}). Trading IQ {trading_iq}: "
            "use a checklist before each entry."
        )
    return f"Your risk is LOW (score {risk_score}). Trading IQ {trading_iq}: keep your process consistent."
