"""
Static reference data for the EmotiBreath engine.

Holds the eight Plutchik base emotions, the dyad table, the breathing patterns
and the association between emotional states and patterns. The data is loaded
once into a :class:`Catalog`, which validates it before anything consumes it.
"""

from collections.abc import Iterable
from functools import lru_cache

from .errors import CatalogError, UnknownPatternError
from .models import Arousal, BaseEmotion, BreathPattern, DyadRule, DyadTier

# MARK: - Base emotions

BASE_EMOTIONS: tuple[BaseEmotion, ...] = (
    BaseEmotion(
        id="joy",
        label="Joy",
        icon="😊",
        color_tag="yellow",
        opposite="sadness",
        arousal=Arousal.BALANCE,
        low_label="Serenity",
        mid_label="Joy",
        high_label="Ecstasy",
    ),
    BaseEmotion(
        id="trust",
        label="Trust",
        icon="🤝",
        color_tag="light-green",
        opposite="disgust",
        arousal=Arousal.BALANCE,
        low_label="Acceptance",
        mid_label="Trust",
        high_label="Admiration",
    ),
    BaseEmotion(
        id="fear",
        label="Fear",
        icon="😨",
        color_tag="dark-green",
        opposite="anger",
        arousal=Arousal.HYPERAROUSAL,
        low_label="Apprehension",
        mid_label="Fear",
        high_label="Terror",
    ),
    BaseEmotion(
        id="surprise",
        label="Surprise",
        icon="😲",
        color_tag="cyan",
        opposite="anticipation",
        arousal=Arousal.BALANCE,
        low_label="Distraction",
        mid_label="Surprise",
        high_label="Amazement",
    ),
    BaseEmotion(
        id="sadness",
        label="Sadness",
        icon="😢",
        color_tag="blue",
        opposite="joy",
        arousal=Arousal.HYPOAROUSAL,
        low_label="Pensiveness",
        mid_label="Sadness",
        high_label="Grief",
    ),
    BaseEmotion(
        id="disgust",
        label="Disgust",
        icon="🤢",
        color_tag="purple",
        opposite="trust",
        arousal=Arousal.HYPOAROUSAL,
        low_label="Boredom",
        mid_label="Disgust",
        high_label="Loathing",
    ),
    BaseEmotion(
        id="anger",
        label="Anger",
        icon="😠",
        color_tag="red-orange",
        opposite="fear",
        arousal=Arousal.HYPERAROUSAL,
        low_label="Annoyance",
        mid_label="Anger",
        high_label="Rage",
    ),
    BaseEmotion(
        id="anticipation",
        label="Anticipation",
        icon="🔮",
        color_tag="orange",
        opposite="surprise",
        arousal=Arousal.BALANCE,
        low_label="Interest",
        mid_label="Anticipation",
        high_label="Vigilance",
    ),
)

# MARK: - Dyads


def _rule(a: str, b: str, result: str, description: str, tier: DyadTier) -> DyadRule:
    return DyadRule(
        a=a,
        b=b,
        result=result,
        label=result.capitalize(),
        description=description,
        tier=tier,
    )


_P, _S, _T = DyadTier.PRIMARY, DyadTier.SECONDARY, DyadTier.TERTIARY

# Table order is the tie-break order used by the detector.
DYAD_RULES: tuple[DyadRule, ...] = (
    # Adjacent emotions on the wheel
    _rule("joy", "trust", "love", "Joy united with trust", _P),
    _rule("trust", "fear", "submission", "Trust mixed with fear", _P),
    _rule("fear", "surprise", "awe", "Fear before the unknown", _P),
    _rule("surprise", "sadness", "disapproval", "A negative surprise", _P),
    _rule("sadness", "disgust", "remorse", "Sadness over past actions", _P),
    _rule("disgust", "anger", "contempt", "Active aversion", _P),
    _rule("anger", "anticipation", "aggressiveness", "Directed anger", _P),
    _rule("anticipation", "joy", "optimism", "Positive expectation", _P),
    # One emotion apart
    _rule("joy", "fear", "guilt", "Joy inhibited by fear", _S),
    _rule("trust", "surprise", "curiosity", "Openness to the unexpected", _S),
    _rule("fear", "sadness", "despair", "Fear without hope", _S),
    _rule("surprise", "disgust", "unbelief", "Shock with rejection", _S),
    _rule("sadness", "anger", "envy", "Sadness with resentment", _S),
    _rule("disgust", "anticipation", "cynicism", "Negative expectation", _S),
    _rule("anger", "joy", "pride", "Assertive satisfaction", _S),
    _rule("anticipation", "trust", "hope", "Confident expectation", _S),
    # Two emotions apart
    _rule("joy", "surprise", "delight", "Unexpected joy", _T),
    _rule("trust", "sadness", "sentimentality", "Nostalgic trust", _T),
    _rule("fear", "disgust", "shame", "Fear of rejection", _T),
    _rule("surprise", "anger", "outrage", "Shock with anger", _T),
    _rule("sadness", "anticipation", "pessimism", "Expecting the worst", _T),
    _rule("disgust", "joy", "morbidness", "Pleasure in the unpleasant", _T),
    _rule("anger", "trust", "dominance", "Assertive control", _T),
    _rule("anticipation", "fear", "anxiety", "Fearful anticipation", _T),
)

# MARK: - Breathing patterns

BREATH_PATTERNS: tuple[BreathPattern, ...] = (
    BreathPattern(
        id="4-7-8",
        name="4-7-8 Breathing",
        description="Inhale for 4s, hold for 7s, exhale for 8s",
        inhale_ms=4000,
        hold_in_ms=7000,
        exhale_ms=8000,
        hold_out_ms=0,
        cycles=4,
    ),
    BreathPattern(
        id="box-breathing",
        name="Box Breathing",
        description="Inhale 4s, hold 4s, exhale 4s, hold 4s",
        inhale_ms=4000,
        hold_in_ms=4000,
        exhale_ms=4000,
        hold_out_ms=4000,
        cycles=4,
    ),
    BreathPattern(
        id="energizing",
        name="Energizing Breath",
        description="Deep inhale, quick exhale",
        inhale_ms=4000,
        exhale_ms=2000,
        cycles=6,
    ),
    BreathPattern(
        id="physiological-sigh",
        name="Physiological Sigh",
        description="Double short inhale, long exhale",
        inhale_ms=2000,
        hold_in_ms=500,
        exhale_ms=6000,
        cycles=5,
    ),
    BreathPattern(
        id="coherent",
        name="Coherent Breathing",
        description="Inhale 5s, exhale 5s, six breaths a minute",
        inhale_ms=5000,
        exhale_ms=5000,
        cycles=10,
    ),
    BreathPattern(
        id="cyclic-sighing",
        name="Cyclic Sighing",
        description="Deep inhale with a short top-up, slow exhale through the mouth",
        inhale_ms=4000,
        exhale_ms=6000,
        cycles=5,
    ),
    BreathPattern(
        id="alternate-nostril",
        name="Alternate Nostril Breathing",
        description="Breathe through alternating nostrils for balance",
        inhale_ms=4000,
        hold_in_ms=4000,
        exhale_ms=4000,
        cycles=10,
    ),
    BreathPattern(
        id="bhastrika",
        name="Bhastrika (Bellows)",
        description="Vigorous nasal inhales and exhales for activation",
        inhale_ms=1000,
        exhale_ms=1000,
        cycles=20,
    ),
    BreathPattern(
        id="meditate",
        name="Meditation",
        description="Choose a guided meditation",
        cycles=0,
    ),
)

DEFAULT_PATTERN_ID = "coherent"

# Emotional state or base emotion -> pattern id
PATTERN_ASSOCIATIONS: dict[str, str] = {
    "anxious": "4-7-8",
    "angry": "box-breathing",
    "tired": "energizing",
    "panic": "physiological-sigh",
    "meditate": "meditate",
    "fear": "cyclic-sighing",
    "anger": "box-breathing",
    "sadness": "coherent",
    "disgust": "bhastrika",
    "joy": "coherent",
    "trust": "coherent",
    "surprise": "coherent",
    "anticipation": "coherent",
}

# Arousal of the emotional states that are not base emotions
STATE_AROUSAL: dict[str, Arousal] = {
    "anxious": Arousal.HYPERAROUSAL,
    "angry": Arousal.HYPERAROUSAL,
    "panic": Arousal.HYPERAROUSAL,
    "tired": Arousal.HYPOAROUSAL,
    "meditate": Arousal.BALANCE,
}

GUIDANCE_TOPICS: dict[Arousal, tuple[str, ...]] = {
    Arousal.HYPERAROUSAL: ("rain", "metta", "body-scan"),
    Arousal.HYPOAROUSAL: ("letting-go", "body-scan", "mindfulness"),
    Arousal.BALANCE: ("mindfulness", "metta"),
}


def validate_rules(rules: Iterable[DyadRule]) -> None:
    """
    Check that the dyad table is usable.

    Raises:
        CatalogError: If a rule pairs an emotion with itself or two rules share
            the same unordered pair.
    """
    seen: dict[frozenset[str], str] = {}
    for rule in rules:
        if rule.a == rule.b:
            raise CatalogError(f"Dyad '{rule.result}' pairs '{rule.a}' with itself")
        if rule.key in seen:
            raise CatalogError(
                f"Dyads '{seen[rule.key]}' and '{rule.result}' share the pair "
                f"({rule.a}, {rule.b})"
            )
        seen[rule.key] = rule.result


class Catalog:
    """
    Validated bundle of emotions, dyad rules and breathing patterns.

    Catalogs are read-only once constructed and safe to share between engines.
    """

    def __init__(
        self,
        emotions: Iterable[BaseEmotion] = BASE_EMOTIONS,
        rules: Iterable[DyadRule] = DYAD_RULES,
        patterns: Iterable[BreathPattern] = BREATH_PATTERNS,
        associations: dict[str, str] | None = None,
        default_pattern_id: str = DEFAULT_PATTERN_ID,
    ) -> None:
        self.emotions: tuple[BaseEmotion, ...] = tuple(emotions)
        self.rules: tuple[DyadRule, ...] = tuple(rules)
        self.patterns: tuple[BreathPattern, ...] = tuple(patterns)
        self.associations: dict[str, str] = dict(
            PATTERN_ASSOCIATIONS if associations is None else associations
        )
        self.default_pattern_id = default_pattern_id

        validate_rules(self.rules)

        self._emotions_by_id = {emotion.id: emotion for emotion in self.emotions}
        self._patterns_by_id = {pattern.id: pattern for pattern in self.patterns}

        if default_pattern_id not in self._patterns_by_id:
            raise CatalogError(f"Default pattern '{default_pattern_id}' is missing")
        for emotion_id, pattern_id in self.associations.items():
            if pattern_id not in self._patterns_by_id:
                raise CatalogError(
                    f"Emotion '{emotion_id}' maps to missing pattern '{pattern_id}'"
                )

    def emotion(self, emotion_id: str) -> BaseEmotion | None:
        return self._emotions_by_id.get(emotion_id)

    def pattern(self, pattern_id: str) -> BreathPattern:
        """
        Look up a pattern by id.

        Raises:
            UnknownPatternError: If no pattern has this id.
        """
        try:
            return self._patterns_by_id[pattern_id]
        except KeyError:
            raise UnknownPatternError(pattern_id) from None

    def pattern_for(self, emotion_id: str) -> BreathPattern | None:
        """Pattern associated with an emotion or emotional state, if any."""
        pattern_id = self.associations.get(emotion_id)
        return self._patterns_by_id.get(pattern_id) if pattern_id else None

    @property
    def default_pattern(self) -> BreathPattern:
        return self._patterns_by_id[self.default_pattern_id]

    def arousal_of(self, emotion_id: str) -> Arousal:
        emotion = self.emotion(emotion_id)
        if emotion is not None:
            return emotion.arousal
        return STATE_AROUSAL.get(emotion_id, Arousal.BALANCE)


@lru_cache
def default_catalog(default_pattern_id: str = DEFAULT_PATTERN_ID) -> Catalog:
    """Get the cached built-in catalog."""
    return Catalog(default_pattern_id=default_pattern_id)
