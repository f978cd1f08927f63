"""
Tests for the reference data and its validation.
"""

import pytest

from emotibreath.catalog import (
    BASE_EMOTIONS,
    BREATH_PATTERNS,
    DYAD_RULES,
    Catalog,
    default_catalog,
    validate_rules,
)
from emotibreath.errors import CatalogError, UnknownPatternError
from emotibreath.models import DyadRule, Phase


class TestCatalog:
    """Built-in data and lookups."""

    def setup_method(self):
        self.catalog = default_catalog()

    def test_dyad_pairs_are_unique(self):
        keys = [rule.key for rule in DYAD_RULES]
        assert len(keys) == len(set(keys)) == 24

    def test_dyads_only_use_base_emotions(self):
        ids = {emotion.id for emotion in BASE_EMOTIONS}
        for rule in DYAD_RULES:
            assert {rule.a, rule.b} <= ids

    def test_opposites_are_symmetric(self):
        for emotion in BASE_EMOTIONS:
            assert self.catalog.emotion(emotion.opposite).opposite == emotion.id

    def test_intensity_labels(self):
        joy = self.catalog.emotion("joy")
        assert joy.intensity_label(1) == "Serenity"
        assert joy.intensity_label(3) == "Joy"
        assert joy.intensity_label(5) == "Ecstasy"

    def test_pattern_lookup(self):
        pattern = self.catalog.pattern("4-7-8")
        assert pattern.cycle_ms == 19000
        assert pattern.total_ms == 76000
        assert pattern.phases() == [Phase.INHALE, Phase.HOLD_IN, Phase.EXHALE]

    def test_unknown_pattern(self):
        with pytest.raises(UnknownPatternError):
            self.catalog.pattern("nope")

    def test_meditation_pattern_is_untimed(self):
        assert not self.catalog.pattern("meditate").is_timed
        assert all(
            pattern.is_timed for pattern in BREATH_PATTERNS if pattern.id != "meditate"
        )

    def test_default_catalog_is_cached(self):
        assert default_catalog() is self.catalog


class TestValidateRules:
    """Rejection of inconsistent dyad tables."""

    def test_duplicate_unordered_pair(self):
        rules = [
            DyadRule(a="joy", b="trust", result="love", label="Love"),
            DyadRule(a="trust", b="joy", result="friendship", label="Friendship"),
        ]
        with pytest.raises(CatalogError):
            validate_rules(rules)

    def test_self_pair(self):
        with pytest.raises(CatalogError):
            validate_rules([DyadRule(a="joy", b="joy", result="bliss", label="Bliss")])

    def test_catalog_validates_on_construction(self):
        rules = list(DYAD_RULES) + [DYAD_RULES[0]]
        with pytest.raises(CatalogError):
            Catalog(rules=rules)

    def test_missing_default_pattern(self):
        with pytest.raises(CatalogError):
            Catalog(default_pattern_id="nope")

    def test_association_to_missing_pattern(self):
        with pytest.raises(CatalogError):
            Catalog(associations={"anxious": "nope"})
