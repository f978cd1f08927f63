"""
Dyad detection for emotion check-ins.

Combines every pair of selected emotions against the dyad table and ranks the
resulting secondary emotions by how strongly they were felt.
"""

from collections.abc import Iterable, Sequence
from itertools import combinations

import structlog

from .models import DetectedDyad, DyadRule, SelectedEmotion

logger = structlog.get_logger(__name__)


def index_rules(rules: Iterable[DyadRule]) -> dict[frozenset[str], tuple[int, DyadRule]]:
    """Map each unordered pair to its first rule and that rule's table position."""
    index: dict[frozenset[str], tuple[int, DyadRule]] = {}
    for position, rule in enumerate(rules):
        index.setdefault(rule.key, (position, rule))
    return index


def detect(
    selections: Sequence[SelectedEmotion], rules: Iterable[DyadRule]
) -> list[DetectedDyad]:
    """
    Detect the dyads formed by a set of selected emotions.

    Every unordered pair of distinct selections is looked up in ``rules``. A
    match yields a dyad whose strength is the sum of both intensities; pairs
    without a rule yield nothing.

    Args:
        selections: The user's selections, at most one per emotion id
        rules: Dyad table; its order breaks ties between equal strengths

    Returns:
        Detected dyads sorted by strength, strongest first
    """
    unique: dict[str, SelectedEmotion] = {}
    for selection in selections:
        unique.setdefault(selection.emotion_id, selection)

    if len(unique) < 2:
        return []

    index = index_rules(rules)
    ranked: list[tuple[int, int, DetectedDyad]] = []

    for first, second in combinations(unique.values(), 2):
        match = index.get(frozenset((first.emotion_id, second.emotion_id)))
        if match is None:
            continue

        position, rule = match
        strength = first.intensity + second.intensity
        dyad = DetectedDyad(
            result=rule.result,
            label=rule.label,
            description=rule.description,
            tier=rule.tier,
            strength=strength,
            emotions=(rule.a, rule.b),
        )
        ranked.append((-strength, position, dyad))

    ranked.sort(key=lambda item: (item[0], item[1]))
    detected = [dyad for _, _, dyad in ranked]

    logger.debug(
        "dyads_detected",
        selections=len(unique),
        results=[dyad.result for dyad in detected],
    )
    return detected
