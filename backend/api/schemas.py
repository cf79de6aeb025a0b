"""Response key lists for the JSON endpoints (kept simple; checked in tests)."""

RISK_RESPONSE_KEYS = ["score", "level", "signals", "tips", "batch_id"]

LEARNING_RESPONSE_KEYS = ["state", "learned_concepts", "trading_iq", "learning_path"]

ANALYZE_RESPONSE_KEYS = ["trade", "analysis", "learning", "risk_score", "coach"]
