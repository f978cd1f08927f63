"""
Tests for dyad detection.
"""

from itertools import permutations

from emotibreath.catalog import DYAD_RULES
from emotibreath.dyads import detect
from emotibreath.models import DyadRule, DyadTier, SelectedEmotion


def pick(**intensities: int) -> list[SelectedEmotion]:
    return [
        SelectedEmotion(emotion_id=emotion_id, intensity=intensity)
        for emotion_id, intensity in intensities.items()
    ]


class TestDetect:
    """Detection over the built-in dyad table."""

    def test_fewer_than_two_selections(self):
        assert detect([], DYAD_RULES) == []
        assert detect(pick(joy=5), DYAD_RULES) == []

    def test_joy_and_trust_make_love(self):
        dyads = detect(pick(joy=4, trust=3), DYAD_RULES)

        assert len(dyads) == 1
        assert dyads[0].result == "love"
        assert dyads[0].strength == 7
        assert dyads[0].tier == DyadTier.PRIMARY
        assert dyads[0].emotions == ("joy", "trust")

    def test_pair_order_does_not_matter(self):
        forward = detect(pick(trust=3, joy=4), DYAD_RULES)
        assert [dyad.result for dyad in forward] == ["love"]

    def test_unmatched_pair_yields_nothing(self):
        assert detect(pick(joy=5, sadness=5), DYAD_RULES) == []

    def test_unknown_emotions_are_ignored(self):
        assert detect(pick(anxious=5, tired=2), DYAD_RULES) == []

    def test_sorted_by_strength(self):
        dyads = detect(pick(joy=1, trust=2, fear=5), DYAD_RULES)

        # trust+fear=7 submission, joy+fear=6 guilt, joy+trust=3 love
        assert [dyad.result for dyad in dyads] == ["submission", "guilt", "love"]
        assert [dyad.strength for dyad in dyads] == [7, 6, 3]

    def test_ties_follow_table_order(self):
        dyads = detect(pick(joy=3, trust=3, anticipation=3), DYAD_RULES)

        # love and optimism are primary dyads listed before hope
        assert [dyad.result for dyad in dyads] == ["love", "optimism", "hope"]

    def test_output_is_independent_of_selection_order(self):
        base = pick(fear=2, surprise=4, anger=3, anticipation=2)
        expected = detect(base, DYAD_RULES)

        for ordering in permutations(base):
            assert detect(list(ordering), DYAD_RULES) == expected

    def test_idempotent(self):
        selections = pick(joy=2, trust=5, fear=3, sadness=1)
        assert detect(selections, DYAD_RULES) == detect(selections, DYAD_RULES)

    def test_duplicate_selection_keeps_first(self):
        selections = pick(joy=4, trust=3) + pick(joy=1)

        dyads = detect(selections, DYAD_RULES)

        assert [(dyad.result, dyad.strength) for dyad in dyads] == [("love", 7)]

    def test_all_eight_emotions(self):
        selections = pick(
            joy=1, trust=1, fear=1, surprise=1, sadness=1, disgust=1, anger=1,
            anticipation=1,
        )

        dyads = detect(selections, DYAD_RULES)

        # 28 pairs, 4 of them opposites with no dyad
        assert len(dyads) == 24
        assert [dyad.result for dyad in dyads] == [rule.result for rule in DYAD_RULES]


class TestCustomRules:
    """Detection over caller-supplied tables."""

    def test_first_rule_wins_on_duplicate_pair(self):
        rules = [
            DyadRule(a="joy", b="trust", result="love", label="Love"),
            DyadRule(a="trust", b="joy", result="friendship", label="Friendship"),
        ]

        dyads = detect(pick(joy=2, trust=2), rules)

        assert [dyad.result for dyad in dyads] == ["love"]

    def test_self_pair_is_never_evaluated(self):
        rules = [DyadRule(a="joy", b="joy", result="bliss", label="Bliss")]
        assert detect(pick(joy=5, trust=1), rules) == []
