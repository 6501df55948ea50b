"""Tests for RuleScorer and RuleClassifier."""

import random
from pathlib import Path

import pytest

from traffic_anomaly.models import RuleMatch
from traffic_anomaly.scorer import RuleClassifier, RuleScorer

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class StubJitter:
    """Always returns the same offset, whatever the bounds."""

    def __init__(self, offset: float) -> None:
        self.offset = offset
        self.calls = []

    def uniform(self, a, b):
        self.calls.append((a, b))
        return self.offset


@pytest.fixture
def scorer():
    return RuleScorer(rng=random.Random(1234))


@pytest.fixture
def custom_scorer():
    return RuleScorer.from_config(FIXTURES_DIR / "test_profile.yaml")


class TestRuleScorer:
    def test_clean_input_scores_zero(self, exact_scorer):
        result = exact_scorer.score("hello world")
        assert result.score == 0.0
        assert result.prediction == "normal"
        assert result.confidence == 1.0
        assert result.threshold == 0.5
        assert result.matched_rules == ()

    def test_script_tag(self, exact_scorer):
        result = exact_scorer.score("<script>x</script>")
        ids = {m.rule_id for m in result.matched_rules}
        assert ids == {"script_injection", "special_characters"}
        assert result.score == pytest.approx(0.9)
        assert result.prediction == "anomaly"
        assert result.confidence == pytest.approx(0.9)

    def test_weights_add_and_cap(self, exact_scorer):
        result = exact_scorer.score("' or '1'='1'; DROP TABLE users")
        assert result.score == 1.0
        assert exact_scorer.raw_score("' or '1'='1'; DROP TABLE users") == 1.0

    def test_admin_password_pair(self, exact_scorer):
        assert exact_scorer.score("admin password").score == pytest.approx(0.3)
        assert exact_scorer.score("admin only").score == 0.0

    def test_destructive_keyword_needs_word_boundary(self, exact_scorer):
        assert exact_scorer.score("delete account").score == pytest.approx(0.7)
        assert exact_scorer.score("undeleted").score == 0.0

    def test_length_rule_adds_exactly_point_two(self, exact_scorer):
        short = exact_scorer.score("a" * 1000).score
        long = exact_scorer.score("a" * 1001).score
        assert long - short == pytest.approx(0.2)

    def test_length_rule_within_jitter(self, scorer):
        for _ in range(20):
            short = scorer.score("b" * 1000).score
            long = scorer.score("b" * 1001).score
            assert abs((long - short) - 0.2) <= 0.1 + 1e-9

    @pytest.mark.parametrize("payload", [
        "<script>alert(1)</script>",
        "<SCRIPT>document.cookie</SCRIPT>",
        "javascript:alert(1)",
        "JAVASCRIPT:void(0)",
    ])
    def test_script_inputs_always_high(self, scorer, payload):
        for _ in range(50):
            assert scorer.score(payload).score >= 0.75

    @pytest.mark.parametrize("payload", [
        "",
        "plain",
        "a" * 2000,
        "<script>' or '1'='1 union select DROP admin password;",
    ])
    def test_score_and_confidence_bounded(self, scorer, payload):
        for threshold in (0.0, 0.5, 1.0):
            result = scorer.score(payload, threshold)
            assert 0.0 <= result.score <= 1.0
            assert 0.0 <= result.confidence <= 1.0

    def test_jitter_is_symmetric_and_injectable(self, quiet_profile):
        quiet_profile.scoring.jitter = 0.05
        stub = StubJitter(0.05)
        result = RuleScorer(profile=quiet_profile, rng=stub).score("admin password")
        assert stub.calls == [(-0.05, 0.05)]
        assert result.score == pytest.approx(0.35)

    def test_jitter_is_clamped(self, quiet_profile):
        quiet_profile.scoring.jitter = 0.05
        low = RuleScorer(profile=quiet_profile, rng=StubJitter(-0.05)).score("clean")
        high = RuleScorer(profile=quiet_profile, rng=StubJitter(0.05)).score("<script>' or '")
        assert low.score == 0.0
        assert high.score == 1.0

    def test_seeded_rng_is_reproducible(self):
        a = RuleScorer(rng=random.Random(7)).score_many(["<script>", "x", "admin password"])
        b = RuleScorer(rng=random.Random(7)).score_many(["<script>", "x", "admin password"])
        assert a == b

    def test_threshold_decides_prediction(self, exact_scorer):
        assert exact_scorer.score("admin password", 0.2).prediction == "anomaly"
        result = exact_scorer.score("admin password", 0.3)
        assert result.prediction == "normal"
        assert result.confidence == pytest.approx(0.7)

    def test_custom_config(self, custom_scorer):
        assert custom_scorer.default_threshold == 0.6
        result = custom_scorer.score("drop it now please")
        assert result.score == pytest.approx(0.75)
        assert result.prediction == "anomaly"

    def test_custom_config_plugins(self, custom_scorer):
        result = custom_scorer.score("../../etc/passwd")
        ids = {m.rule_id for m in result.matched_rules}
        assert "directory_traversal" in ids
        assert "not_short" in ids

    def test_register_plugin(self, exact_scorer):
        exact_scorer.register_plugin("custom", lambda text: RuleMatch("custom", 0.4, "custom rule"))
        result = exact_scorer.score("anything")
        assert result.score == pytest.approx(0.4)
        assert [m.rule_id for m in result.matched_rules] == ["custom"]

    def test_plugin_returning_none(self, exact_scorer):
        exact_scorer.register_plugin("noop", lambda text: None)
        assert exact_scorer.score("anything").matched_rules == ()

    def test_plugin_exception_handled(self, exact_scorer, caplog):
        def bad_plugin(text):
            raise RuntimeError("broken")

        exact_scorer.register_plugin("bad", bad_plugin)
        result = exact_scorer.score("<script>")
        assert "bad" not in {m.rule_id for m in result.matched_rules}
        assert "Scoring plugin 'bad' failed" in caplog.text


class TestRuleClassifier:
    @pytest.fixture
    def classifier(self):
        return RuleClassifier()

    def test_sql_injection(self, classifier):
        result = classifier.classify("admin' OR '1'='1'--")
        assert result.prediction == "attack"
        assert result.confidence == 0.92
        assert result.rule_id == "sql_tautology_or_comment"

    def test_normal_login(self, classifier):
        result = classifier.classify("normal login")
        assert result.prediction == "normal"
        assert result.confidence == 0.85

    def test_script_wins_over_later_rules(self, classifier):
        result = classifier.classify("<script>alert(1)</script> admin")
        assert result.prediction == "attack"
        assert result.confidence == 0.95

    def test_alert_call(self, classifier):
        assert classifier.classify("alert(document.cookie)").confidence == 0.95

    def test_privileged_account(self, classifier):
        result = classifier.classify("root access")
        assert result.prediction == "attack"
        assert result.confidence == 0.7

    def test_first_match_not_additive(self, classifier):
        # admin matches before "login" can
        result = classifier.classify("admin login")
        assert result.prediction == "attack"
        assert result.confidence == 0.7

    def test_default(self, classifier):
        for text in ("", "rapid requests", None):
            result = classifier.classify(text)
            assert result.prediction == "normal"
            assert result.confidence == 0.5
            assert result.rule_id is None

    def test_custom_config(self):
        classifier = RuleClassifier.from_config(FIXTURES_DIR / "test_profile.yaml")
        assert classifier.classify("DROP table").prediction == "attack"
        assert classifier.classify("<script>").confidence == 0.6

    def test_classify_many(self, classifier):
        results = classifier.classify_many(["normal search", "<script>"])
        assert [r.prediction for r in results] == ["normal", "attack"]
