"""
Treatment recommendation for emotion check-ins.
"""

from collections.abc import Sequence

import structlog

from .catalog import GUIDANCE_TOPICS, Catalog
from .models import Arousal, DetectedDyad, Recommendation, SelectedEmotion

logger = structlog.get_logger(__name__)


def recommend(
    selections: Sequence[SelectedEmotion],
    detected_dyads: Sequence[DetectedDyad],
    catalog: Catalog,
) -> Recommendation:
    """
    Recommend a breathing pattern for a check-in.

    The most intense selection that maps to a known pattern wins; on equal
    intensity the one selected first wins. Without any mapped selection the
    catalog's default pattern is returned. Detected dyads never change the
    pattern and are passed through for display.

    Args:
        selections: The user's selections in the order they were made
        detected_dyads: Output of the dyad detector for the same selections
        catalog: Catalog providing the emotion to pattern association

    Returns:
        The recommendation; this function never raises on unmatched input
    """
    chosen: SelectedEmotion | None = None
    for selection in selections:
        if catalog.pattern_for(selection.emotion_id) is None:
            continue
        if chosen is None or selection.intensity > chosen.intensity:
            chosen = selection

    dyads = list(detected_dyads)

    if chosen is None:
        pattern = catalog.default_pattern
        logger.info(
            "recommendation_fallback",
            selections=[selection.emotion_id for selection in selections],
            pattern_id=pattern.id,
        )
        return Recommendation(
            pattern_id=pattern.id,
            reason=f"No specific match, suggesting {pattern.name}",
            arousal=Arousal.BALANCE,
            guidance_topics=list(GUIDANCE_TOPICS[Arousal.BALANCE]),
            dyads=dyads,
        )

    pattern = catalog.pattern_for(chosen.emotion_id)
    arousal = catalog.arousal_of(chosen.emotion_id)
    emotion = catalog.emotion(chosen.emotion_id)
    name = emotion.intensity_label(chosen.intensity) if emotion else chosen.emotion_id

    return Recommendation(
        pattern_id=pattern.id,
        reason=f"{pattern.name} for {name.lower()} (intensity {chosen.intensity})",
        emotion_id=chosen.emotion_id,
        arousal=arousal,
        guidance_topics=list(GUIDANCE_TOPICS[arousal]),
        dyads=dyads,
    )
