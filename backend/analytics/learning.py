"""Learning progression: concept catalog, per-concept mastery and Trading IQ.

Every operation takes a state snapshot and returns a new value; nothing here
keeps or mutates ambient state. The caller (the API layer) owns the current
state and persists it as an opaque JSON blob.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, NewType, Optional, Sequence

logger = logging.getLogger(__name__)

# Open identifier: the analysis provider may emit ids the catalog lacks.
ConceptId = NewType("ConceptId", str)

MASTERY_THRESHOLD = 3

UNLOCK_POINTS = 5
INTERACTION_POINTS = 3
MASTERY_POINTS = 10
MAX_IQ = 100

LEVEL_LABELS = {1: "Fundamentals", 2: "Intermediate", 3: "Advanced"}


@dataclass(frozen=True)
class Concept:
    id: str
    name: str
    level: int
    description: str
    icon: str


@dataclass(frozen=True)
class ConceptProgress:
    unlocked: bool = False
    interactions: int = 0
    mastered: bool = False

    def reinforced(self) -> "ConceptProgress":
        interactions = self.interactions + 1
        return ConceptProgress(
            unlocked=True,
            interactions=interactions,
            mastered=self.mastered or interactions >= MASTERY_THRESHOLD,
        )


LearningState = Mapping[ConceptId, ConceptProgress]

CONCEPTS: tuple[Concept, ...] = (
    Concept("trend_analysis", "Trend Analysis", 1,
            "Reading market direction before placing a trade", "📈"),
    Concept("risk_management", "Risk Management", 1,
            "Controlling how much you risk per trade", "🛡️"),
    Concept("volatility", "Understanding Volatility", 1,
            "How price movement intensity affects your trades", "🌊"),
    Concept("timing", "Entry Timing", 2,
            "When to enter a trade for the best odds", "⏱️"),
    Concept("position_sizing", "Position Sizing", 2,
            "How much to stake relative to your balance", "⚖️"),
    Concept("diversification", "Asset Selection", 2,
            "Choosing the right market for your strategy", "🎯"),
    Concept("psychology", "Trading Psychology", 3,
            "Managing emotions and avoiding revenge trading", "🧠"),
    Concept("entry_signals", "Entry Confirmation", 3,
            "Using multiple signals to confirm trade direction", "✅"),
)


def initial_state(catalog: Sequence[Concept] = CONCEPTS) -> Dict[ConceptId, ConceptProgress]:
    return {ConceptId(c.id): ConceptProgress() for c in catalog}


def advance(state: LearningState, concept_id: ConceptId) -> Dict[ConceptId, ConceptProgress]:
    """Record one more interaction with `concept_id`.

    Returns a new mapping; `state` is left untouched. Ids unknown to the
    state start from locked progress and are added.
    """
    current = state.get(concept_id) or ConceptProgress()
    return {**state, concept_id: current.reinforced()}


def learned_concept_names(state: LearningState, catalog: Sequence[Concept] = CONCEPTS) -> List[str]:
    names = {c.id: c.name for c in catalog}
    return [names.get(cid, cid) for cid, progress in state.items() if progress.unlocked]


def trading_iq(state: LearningState) -> int:
    iq = 0
    for progress in state.values():
        if progress.unlocked:
            iq += UNLOCK_POINTS
        iq += progress.interactions * INTERACTION_POINTS
        if progress.mastered:
            iq += MASTERY_POINTS
    return int(min(MAX_IQ, iq))


def learning_path(state: LearningState, catalog: Sequence[Concept] = CONCEPTS) -> List[Dict[str, Any]]:
    """Group the catalog by level, each concept with its current progress."""
    levels = sorted({c.level for c in catalog})
    path = []
    for level in levels:
        concepts = []
        for c in catalog:
            if c.level != level:
                continue
            progress = state.get(c.id) or ConceptProgress()
            concepts.append({**asdict(c), "progress": asdict(progress)})
        path.append({
            "level": level,
            "label": LEVEL_LABELS.get(level, f"Level {level}"),
            "concepts": concepts,
        })
    return path


# --------------------------
# Persistence (opaque blob)
# --------------------------

def dumps_state(state: LearningState) -> str:
    return json.dumps({cid: asdict(progress) for cid, progress in state.items()})


def _progress_from_dict(raw: Any) -> ConceptProgress:
    if not isinstance(raw, dict):
        raise ValueError(f"progress must be an object, got {type(raw).__name__}")
    unlocked = raw.get("unlocked")
    interactions = raw.get("interactions")
    mastered = raw.get("mastered")
    if not isinstance(unlocked, bool) or not isinstance(mastered, bool):
        raise ValueError("unlocked/mastered must be booleans")
    if isinstance(interactions, bool) or not isinstance(interactions, int) or interactions < 0:
        raise ValueError("interactions must be a non-negative integer")
    if unlocked != (interactions > 0):
        raise ValueError("unlocked must match interactions > 0")
    if mastered and (not unlocked or interactions < MASTERY_THRESHOLD):
        raise ValueError(f"mastered needs {MASTERY_THRESHOLD}+ interactions")
    return ConceptProgress(unlocked=unlocked, interactions=interactions, mastered=mastered)


def loads_state(payload: Optional[str], catalog: Sequence[Concept] = CONCEPTS) -> Dict[ConceptId, ConceptProgress]:
    """Reload a persisted state; anything unreadable means a fresh start."""
    if not payload:
        return initial_state(catalog)
    try:
        raw = json.loads(payload)
        if not isinstance(raw, dict):
            raise ValueError(f"state must be an object, got {type(raw).__name__}")
        loaded = {ConceptId(str(cid)): _progress_from_dict(p) for cid, p in raw.items()}
    except (TypeError, ValueError, RecursionError) as e:
        logger.warning("Discarding corrupt learning state: %s", e)
        return initial_state(catalog)
    return {**initial_state(catalog), **loaded}
