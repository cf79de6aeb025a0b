"""Recommendation text blocks keyed by risk rule.

Short, non-judgmental, and actionable. Used by the risk assessment payload.
"""

from typing import Dict, Iterable, List

DEFAULT_RECOMMENDATIONS: Dict[str, List[str]] = {
    "martingale": [
        "Never increase your stake after a loss; keep it flat or reduce it.",
        "Decide the stake for the whole session before the first trade.",
    ],
    "loss_rate": [
        "After 2 consecutive losses, stop and take a 15-minute break.",
        "Review the last losing trades for a common setup before trading again.",
    ],
    "oversized_stake": [
        "Cap any single stake at 1-2% of your balance.",
        "If a trade feels worth a bigger stake, write down why before placing it.",
    ],
    "revenge_trading": [
        "Wait at least 5 minutes after a loss before the next entry.",
        "Write a one-line reason before every trade: 'I trade because...'.",
    ],
}


def tips_for(fired_rules: Iterable[str]) -> List[str]:
    """Tips for the rules that fired, in rule order, without duplicates."""
    tips: List[str] = []
    for rule in fired_rules:
        for tip in DEFAULT_RECOMMENDATIONS.get(rule, []):
            if tip not in tips:
                tips.append(tip)
    return tips
