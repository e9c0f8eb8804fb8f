"""Tests for questioning style selection and the effectiveness monitor."""

import pytest

from elicit.content.styles import STYLE_PROFILES, get_style_profile
from elicit.core.errors import ConfigurationError
from elicit.core.style import monitor_effectiveness, select_style, temperature_for_style
from elicit.core.types import (
    ClarityMetrics,
    EngagementMetrics,
    EngagementPattern,
    QuestioningStyle,
    SophisticationLevel,
)

from fakes import make_analysis, make_context, make_exchange


S = QuestioningStyle


class TestSelectStyleBands:
    def test_expert_composite(self):
        """A breakdown averaging 0.85 with no signals gets the expert style."""
        context = make_context([make_exchange()])
        context.user_profile.engagement_pattern = EngagementPattern.ENGAGED
        assert select_style(context, make_analysis(breakdown=0.85)) == S.EXPERT_EFFICIENT

    def test_expert_with_collaborative_spirit(self):
        analysis = make_analysis(breakdown=0.85)
        analysis.engagement_metrics = EngagementMetrics(collaborative_spirit=0.8)
        assert select_style(make_context(), analysis) == S.COLLABORATIVE_EXPLORATORY

    @pytest.mark.parametrize("score, expected", [
        (0.9, S.EXPERT_EFFICIENT),
        (0.65, S.ADVANCED_TECHNICAL),
        (0.78, S.ADVANCED_TECHNICAL),
        (0.45, S.INTERMEDIATE_GUIDED),
        (0.2, S.NOVICE_FRIENDLY),
    ])
    def test_bands(self, score, expected):
        context = make_context()
        context.user_profile.sophistication_level = SophisticationLevel.NOVICE
        assert select_style(context, make_analysis(breakdown=score)) == expected

    def test_profile_level_pulls_up(self):
        context = make_context()
        context.user_profile.sophistication_level = SophisticationLevel.ADVANCED
        assert select_style(context, make_analysis(breakdown=0.2)) == S.ADVANCED_TECHNICAL


class TestSelectStyleTriggers:
    def test_high_urgency_impatience(self):
        analysis = make_analysis(breakdown=0.2, impatience=(True, 0.3, "high"))
        assert select_style(make_context(), analysis) == S.IMPATIENT_ACCELERATED

    def test_moderate_impatience(self):
        analysis = make_analysis(impatience=(True, 0.3, "moderate"))
        assert select_style(make_context(), analysis) == S.EXPERT_EFFICIENT

    def test_mild_impatience_still_accelerates(self):
        context = make_context()
        context.user_profile.sophistication_level = SophisticationLevel.NOVICE
        analysis = make_analysis(breakdown=0.2, impatience=(True, 0.9, "mild"))
        assert select_style(context, analysis) == S.IMPATIENT_ACCELERATED

    def test_confusion(self):
        analysis = make_analysis(breakdown=0.9, confusion=(True, 0.4))
        assert select_style(make_context(), analysis) == S.CONFUSED_SUPPORTIVE

    def test_expertise_skip_levels(self):
        advanced = make_analysis(breakdown=0.2, expertise=(True, 0.5, "advanced"))
        intermediate = make_analysis(breakdown=0.2, expertise=(True, 0.5, "intermediate"))
        assert select_style(make_context(), advanced) == S.EXPERT_EFFICIENT
        assert select_style(make_context(), intermediate) == S.ADVANCED_TECHNICAL

    def test_basics_expertise_goes_efficient(self):
        context = make_context()
        context.user_profile.sophistication_level = SophisticationLevel.NOVICE
        analysis = make_analysis(breakdown=0.2, expertise=(True, 0.9, "basics"))
        assert select_style(context, analysis) == S.EXPERT_EFFICIENT

    def test_decreasing_trend_when_disengaged(self):
        # recent mean stays above the low-engagement cut, but it is falling
        context = make_context([make_exchange(engagement=e) for e in (0.6, 0.5, 0.3)])
        context.user_profile.engagement_pattern = EngagementPattern.DISENGAGED
        assert select_style(context, make_analysis(breakdown=0.9)) == S.COLLABORATIVE_EXPLORATORY

    def test_decreasing_trend_needs_disengaged_pattern(self):
        context = make_context([make_exchange(engagement=e) for e in (0.6, 0.5, 0.3)])
        context.user_profile.engagement_pattern = EngagementPattern.MODERATELY_ENGAGED
        assert select_style(context, make_analysis(breakdown=0.9)) == S.EXPERT_EFFICIENT

    def test_disengaged_history(self):
        context = make_context([make_exchange(engagement=0.2) for _ in range(3)])
        context.user_profile.engagement_pattern = EngagementPattern.DISENGAGED
        assert select_style(context, make_analysis(breakdown=0.9)) == S.COLLABORATIVE_EXPLORATORY

    def test_low_engagement_needs_disengaged_pattern(self):
        context = make_context([make_exchange(engagement=0.2) for _ in range(3)])
        context.user_profile.engagement_pattern = EngagementPattern.MODERATELY_ENGAGED
        assert select_style(context, make_analysis(breakdown=0.9)) == S.EXPERT_EFFICIENT


class TestTemperatures:
    def test_every_style_has_a_profile(self):
        assert set(STYLE_PROFILES) == set(S)

    def test_supportive_cooler_than_exploratory(self):
        assert temperature_for_style(S.CONFUSED_SUPPORTIVE) < temperature_for_style(S.COLLABORATIVE_EXPLORATORY)
        assert temperature_for_style(S.NOVICE_FRIENDLY) < temperature_for_style(S.EXPERT_EFFICIENT)

    def test_string_lookup(self):
        assert get_style_profile("expert-efficient").style == S.EXPERT_EFFICIENT

    def test_unknown_style(self):
        with pytest.raises(ConfigurationError):
            get_style_profile("socratic")


class TestEffectiveness:
    def test_well_matched_style(self):
        analysis = make_analysis(breakdown=0.5)
        analysis.engagement_metrics = EngagementMetrics(*([0.8] * 5))
        analysis.clarity_metrics = ClarityMetrics(*([0.8] * 5))
        result = monitor_effectiveness(make_context(), S.INTERMEDIATE_GUIDED, analysis)
        # (0.8 + 0.8 + 1.0) / 3
        assert result.effectiveness == pytest.approx(0.8667, abs=1e-3)
        assert result.recommended is None
        assert result.confidence == 0.9

    def test_low_effectiveness_reselects(self):
        analysis = make_analysis(breakdown=0.9)
        analysis.engagement_metrics = EngagementMetrics(*([0.2] * 5))
        analysis.clarity_metrics = ClarityMetrics(*([0.3] * 5))
        result = monitor_effectiveness(make_context(), S.NOVICE_FRIENDLY, analysis)
        assert result.effectiveness < 0.6
        assert result.recommended == S.EXPERT_EFFICIENT
        assert result.confidence == 0.6
        assert "Low effectiveness" in result.reasoning

    def test_impatience_overrides_good_effectiveness(self):
        analysis = make_analysis(breakdown=0.5, impatience=(True, 0.2, "mild"))
        analysis.engagement_metrics = EngagementMetrics(*([0.8] * 5))
        analysis.clarity_metrics = ClarityMetrics(*([0.8] * 5))
        result = monitor_effectiveness(make_context(), S.INTERMEDIATE_GUIDED, analysis)
        assert result.recommended == S.IMPATIENT_ACCELERATED

    def test_confusion_overrides_good_effectiveness(self):
        analysis = make_analysis(breakdown=0.5, confusion=(True, 0.2))
        analysis.engagement_metrics = EngagementMetrics(*([0.8] * 5))
        analysis.clarity_metrics = ClarityMetrics(*([0.8] * 5))
        result = monitor_effectiveness(make_context(), "intermediate-guided", analysis)
        assert result.recommended == S.CONFUSED_SUPPORTIVE
        assert result.to_dict()["recommended"] == "confused-supportive"

    def test_impatience_overrides_low_effectiveness(self):
        analysis = make_analysis(breakdown=0.9, impatience=(True, 0.2, "mild"))
        analysis.engagement_metrics = EngagementMetrics(*([0.2] * 5))
        analysis.clarity_metrics = ClarityMetrics(*([0.3] * 5))
        result = monitor_effectiveness(make_context(), S.NOVICE_FRIENDLY, analysis)
        assert result.effectiveness < 0.6
        assert result.recommended == S.IMPATIENT_ACCELERATED
