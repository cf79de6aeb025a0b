"""Scoring helpers shared by the risk rules, the coach and the API."""


def clamp(v: float, lo=0.0, hi=100.0) -> float:
    return float(max(lo, min(hi, v)))


def risk_level(score: float) -> str:
    if score >= 80:
        return "CRITICAL"
    if score >= 60:
        return "HIGH"
    if score >= 40:
        return "MODERATE"
    return "LOW"
