"""
Unit tests for composite risk scoring.

Usage:
    pytest tests/test_scoring.py -v
"""
import pytest
from datetime import timedelta

from conftest import NOW, make_report, make_unit, make_water_test, outbreak_reports
from outbreak_engine.models import QualityStatus
from outbreak_engine.scoring import RiskAssessment, RiskScorer


class TestRiskScorer:
    """Test the score() contract."""

    def test_no_reports_scores_zero(self):
        """Should fail closed when there are no reports."""
        scorer = RiskScorer()

        assert scorer.score({}, 1.0, 0) == 0.0
        assert scorer.score({"fever": 3}, 1.0, 0) == 0.0

    def test_no_symptoms_scores_zero(self):
        """Should score zero when reports carry no symptoms, whatever the water risk."""
        assert RiskScorer().score({}, 0.9, 12) == 0.0

    def test_warn_scenario(self):
        """5 fever + 2 cough with no water tests should score 0.70."""
        score = RiskScorer().score({"fever": 5, "cough": 2}, 0.0, 7)

        assert score == pytest.approx(0.70)

    def test_escalate_scenario(self):
        """Same symptoms with 80% bad water should score 0.94."""
        score = RiskScorer().score({"fever": 5, "cough": 2}, 0.8, 7)

        assert score == pytest.approx(0.94)

    def test_diversity_bonus_applied_after_weighting(self):
        """4 distinct symptoms once each should score 0.7 * 0.2 * 1.2."""
        freq = {"fever": 1, "cough": 1, "rash": 1, "vomiting": 1}

        assert RiskScorer().score(freq, 0.0, 4) == pytest.approx(0.168)

    def test_no_diversity_bonus_at_three_labels(self):
        freq = {"fever": 1, "cough": 1, "rash": 1}

        assert RiskScorer().score(freq, 0.0, 3) == pytest.approx(0.14)

    def test_clamped_to_one(self):
        """Diversity bonus on a saturated score should clamp at 1.0."""
        freq = {"fever": 10, "cough": 8, "rash": 6, "vomiting": 5}

        assert RiskScorer().score(freq, 1.0, 29) == 1.0

    def test_symptom_risk_saturates_at_threshold(self):
        scorer = RiskScorer(outbreak_threshold=5)

        assert scorer.score({"fever": 5}, 0.0, 5) == scorer.score({"fever": 50}, 0.0, 50)

    def test_custom_threshold(self):
        """Lower threshold should reach full symptom risk sooner."""
        assert RiskScorer(outbreak_threshold=2).score({"fever": 2}, 0.0, 2) == pytest.approx(0.7)

    def test_monotonic_in_max_count(self):
        """Score should never drop as the top symptom count grows."""
        scorer = RiskScorer()
        scores = [
            scorer.score({"fever": n, "cough": 1}, 0.4, n + 1)
            for n in range(1, 12)
        ]

        assert scores == sorted(scores)

    @pytest.mark.parametrize("water", [-0.5, 0.0, 0.3, 1.0, 2.0])
    @pytest.mark.parametrize("max_count", [1, 3, 5, 40])
    def test_always_in_unit_interval(self, water, max_count):
        freq = {"a": max_count, "b": 1, "c": 1, "d": 1, "e": 1}

        assert 0.0 <= RiskScorer().score(freq, water, sum(freq.values())) <= 1.0

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            RiskScorer(outbreak_threshold=0)


class TestRiskAssessment:
    """Test assessment building from raw observations."""

    def test_assess_from_observations(self):
        """Should combine frequency, water ratio and score."""
        unit = make_unit()
        tests = (
            [make_water_test(status=QualityStatus.CONTAMINATED) for _ in range(8)]
            + [make_water_test(status=QualityStatus.SAFE) for _ in range(2)]
        )

        assessment = RiskScorer().assess(
            unit, outbreak_reports(), tests, NOW - timedelta(days=7), NOW
        )

        assert isinstance(assessment, RiskAssessment)
        assert assessment.unit_id == "v1"
        assert assessment.symptom_frequency == {"fever": 5, "cough": 2}
        assert assessment.water_risk == pytest.approx(0.8)
        assert assessment.total_reports == 7
        assert assessment.score == pytest.approx(0.94)
        assert assessment.most_common_symptom == "fever"

    def test_assess_counts_reports_without_symptoms(self):
        """Empty reports count toward volume but not toward frequency."""
        reports = [make_report(symptoms=[]), make_report(symptoms=["fever"])]

        assessment = RiskScorer().assess(make_unit(), reports, [], NOW - timedelta(days=7), NOW)

        assert assessment.total_reports == 2
        assert assessment.symptom_frequency == {"fever": 1}

    def test_to_dict(self):
        assessment = RiskScorer().assess(
            make_unit(), outbreak_reports(), [], NOW - timedelta(days=7), NOW, computed_at=NOW
        )

        data = assessment.to_dict()

        assert data["unit_id"] == "v1"
        assert data["score"] == pytest.approx(0.7)
        assert data["window_end"] == NOW.isoformat()
        assert data["computed_at"] == NOW.isoformat()
        assert data["symptom_frequency"]["fever"] == 5
