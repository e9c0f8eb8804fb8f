"""
Tests for the pivot decision rules.

Signals are checked before structural rules, structural rules before
keywords, and the first rule that fires supplies the reason.
"""

import pytest

from elicit.core.pivot import NO_PIVOT_REASON, PivotThresholds, check_pivot
from elicit.core.types import Stage

from fakes import make_analysis, make_context, make_exchange


class TestSignalRules:
    def test_expertise_above_threshold(self):
        """Detected expertise at 0.75 forces a pivot on the first exchange."""
        context = make_context([make_exchange("We use event sourcing with CQRS for the ledger")])
        analysis = make_analysis(expertise=(True, 0.75, "basics"))
        decision = check_pivot(context, analysis)
        assert decision.should_pivot
        assert "expertise" in decision.pivot_reason
        assert "basics" in decision.pivot_reason

    def test_threshold_is_strict(self):
        context = make_context([make_exchange()])
        decision = check_pivot(context, make_analysis(expertise=(True, 0.6)))
        assert not decision.should_pivot

    def test_undetected_signal_ignored(self):
        context = make_context([make_exchange()])
        decision = check_pivot(context, make_analysis(fatigue=(False, 0.99)))
        assert not decision.should_pivot

    def test_fatigue_wins_over_impatience(self):
        context = make_context([make_exchange()])
        analysis = make_analysis(fatigue=(True, 0.9), impatience=(True, 0.9, "high"))
        assert "fatigue" in check_pivot(context, analysis).pivot_reason

    def test_impatience_reason_carries_urgency(self):
        context = make_context([make_exchange()])
        decision = check_pivot(context, make_analysis(impatience=(True, 0.7, "high")))
        assert decision.pivot_reason == "User showing high impatience"

    def test_redirect_default_destination(self):
        context = make_context([make_exchange()])
        decision = check_pivot(context, make_analysis(redirect=(True, 0.9)))
        assert decision.pivot_reason == "User requesting direct access to deliverables"

    def test_redirect_named_destination(self):
        context = make_context([make_exchange()])
        decision = check_pivot(context, make_analysis(redirect=(True, 0.9, "wireframes")))
        assert decision.pivot_reason.endswith("wireframes")

    def test_custom_thresholds(self):
        context = make_context([make_exchange()])
        strict = PivotThresholds(expertise=0.9)
        assert not check_pivot(context, make_analysis(expertise=(True, 0.75)), strict).should_pivot


class TestStructuralRules:
    def test_low_engagement_over_last_three(self):
        """Three disengaged answers trigger a pivot with no escape signal."""
        history = [make_exchange(engagement=0.3) for _ in range(3)]
        decision = check_pivot(make_context(history), make_analysis(engagement=0.3))
        assert decision.should_pivot
        assert decision.pivot_reason == "Consistently low engagement detected"

    def test_one_good_answer_recovers(self):
        history = [make_exchange(engagement=e) for e in (0.2, 0.3, 0.9)]
        assert not check_pivot(make_context(history), make_analysis()).should_pivot

    def test_missing_analysis_counts_neutral(self):
        history = [make_exchange(engagement=0.2), make_exchange(analysis=False), make_exchange(engagement=0.3)]
        # (0.2 + 0.5 + 0.3) / 3 is below 0.4
        assert check_pivot(make_context(history), make_analysis()).should_pivot

    def test_long_first_stage(self):
        history = [make_exchange(engagement=0.9) for _ in range(9)]
        decision = check_pivot(make_context(history), make_analysis())
        assert decision.pivot_reason == "Extended conversation without stage progression"

    def test_long_history_in_later_stage_is_fine(self):
        history = [make_exchange(engagement=0.9) for _ in range(9)]
        context = make_context(history, stage=Stage.TECHNICAL_SPECS)
        assert not check_pivot(context, make_analysis()).should_pivot

    def test_long_history_reported_before_low_engagement(self):
        history = [make_exchange(engagement=0.1) for _ in range(9)]
        decision = check_pivot(make_context(history), make_analysis())
        assert decision.pivot_reason == "Extended conversation without stage progression"

    def test_empty_history_never_low_engagement(self):
        assert not check_pivot(make_context([]), make_analysis(engagement=0.0)).should_pivot


class TestKeywordRule:
    @pytest.mark.parametrize("text", [
        "Can you just generate something?",
        "Please ASSUME whatever is standard",
        "let's move forward",
        "Show me a wireframe",
    ])
    def test_keywords(self, text):
        decision = check_pivot(make_context([make_exchange(text)]), make_analysis())
        assert decision.should_pivot
        assert decision.pivot_reason == "User explicitly requesting assumption generation"

    def test_only_latest_response_scanned(self):
        history = [make_exchange("just generate it"), make_exchange("Actually, the users are auditors")]
        assert not check_pivot(make_context(history), make_analysis()).should_pivot


class TestNoPivot:
    def test_reason_and_no_assumptions(self):
        decision = check_pivot(make_context([make_exchange("Our users are loan officers")]), make_analysis())
        assert not decision.should_pivot
        assert decision.pivot_reason == NO_PIVOT_REASON
        assert decision.assumption_set is None

    def test_raising_confidence_never_undoes_a_pivot(self):
        context = make_context([make_exchange()])
        fired = [
            check_pivot(context, make_analysis(impatience=(True, c))).should_pivot
            for c in (0.3, 0.5, 0.51, 0.7, 0.95)
        ]
        assert fired == [False, False, True, True, True]
