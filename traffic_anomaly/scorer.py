"""Weighted-rule anomaly scoring and first-match classification.

Both engines are deterministic rule evaluators, not learned models. They sit
behind the ScoringModel / ClassificationModel protocols so a trained model
or a live service (see client.RemoteModel) can be swapped in.
"""

import logging
import random
from pathlib import Path
from typing import Protocol, Self

from .config import DetectionProfile, ScoringConfig, load_default_profile, load_profile
from .criteria import evaluate_condition
from .models import ANOMALY, NORMAL, AnomalyScore, Classification, RuleMatch
from .plugin import RulePlugin, load_plugin

logger = logging.getLogger(__name__)


class JitterSource(Protocol):
    def uniform(self, a: float, b: float) -> float: ...


class ScoringModel(Protocol):
    def score(self, text: str, threshold: float = 0.5) -> AnomalyScore: ...


class ClassificationModel(Protocol):
    def classify(self, text: str) -> Classification: ...


class RuleScorer:
    """Scores inputs by summing the weights of every matching rule.

    The capped sum is perturbed by symmetric noise of amplitude
    ``profile.scoring.jitter`` drawn from ``rng`` to model real-world
    nondeterminism. Pass a seeded ``random.Random`` (or set jitter to 0 in
    the profile) for reproducible scores.
    """

    def __init__(
        self,
        profile: DetectionProfile | None = None,
        rng: JitterSource | None = None,
    ) -> None:
        self._profile = profile or load_default_profile()
        self._rng = rng if rng is not None else random.Random()
        self._plugins: dict[str, RulePlugin] = {}
        self._load_configured_plugins()

    @classmethod
    def from_config(cls, path: str | Path, rng: JitterSource | None = None) -> Self:
        """Create a scorer from a YAML profile file."""
        profile = load_profile(path)
        return cls(profile=profile, rng=rng)

    @property
    def default_threshold(self) -> float:
        return self._profile.scoring.threshold

    def register_plugin(self, plugin_id: str, func: RulePlugin) -> None:
        """Register a plugin callable programmatically."""
        self._plugins[plugin_id] = func

    def match(self, text: str) -> list[RuleMatch]:
        """Return every rule and plugin that matches the input, in evaluation order."""
        text = text or ""
        matched: list[RuleMatch] = []

        for rule in self._profile.rules:
            if evaluate_condition(text, rule.condition):
                matched.append(RuleMatch(
                    rule_id=rule.id,
                    weight=rule.weight,
                    reason=rule.description or rule.name,
                ))

        for plugin_id, func in self._plugins.items():
            try:
                result = func(text)
            except Exception:
                logger.warning("Scoring plugin %r failed, skipping", plugin_id, exc_info=True)
                continue
            if result is not None:
                matched.append(result)

        return matched

    def raw_score(self, text: str) -> float:
        """Sum of matched weights, clamped to the profile bounds, without jitter."""
        total = sum(m.weight for m in self.match(text))
        return self._clamp(total, self._profile.scoring)

    def score(self, text: str, threshold: float | None = None) -> AnomalyScore:
        """Score a single input against a decision threshold."""
        if threshold is None:
            threshold = self._profile.scoring.threshold
        cfg = self._profile.scoring
        matched = self.match(text)

        value = self._clamp(sum(m.weight for m in matched), cfg)
        if cfg.jitter:
            value = self._clamp(value + self._rng.uniform(-cfg.jitter, cfg.jitter), cfg)
        value = round(value, 3)

        is_anomaly = value > threshold
        confidence = value if is_anomaly else 1 - value
        return AnomalyScore(
            score=value,
            prediction=ANOMALY if is_anomaly else NORMAL,
            confidence=round(confidence, 3),
            threshold=threshold,
            matched_rules=tuple(matched),
        )

    def score_many(self, texts: list[str], threshold: float | None = None) -> list[AnomalyScore]:
        """Score a list of inputs."""
        return [self.score(text, threshold) for text in texts]

    def _load_configured_plugins(self) -> None:
        """Load plugins declared in the profile."""
        for plugin_cfg in self._profile.plugins:
            func = load_plugin(plugin_cfg.callable)
            self._plugins[plugin_cfg.id] = func

    @staticmethod
    def _clamp(value: float, cfg: ScoringConfig) -> float:
        """Clamp a score within the configured min/max bounds."""
        if value < cfg.min:
            value = cfg.min
        if value > cfg.max:
            value = cfg.max
        return value


class RuleClassifier:
    """Ordered classifier: the first matching rule decides, nothing is summed.

    Answers "which class" where RuleScorer answers "how anomalous".
    """

    def __init__(self, profile: DetectionProfile | None = None) -> None:
        self._config = (profile or load_default_profile()).classifier

    @classmethod
    def from_config(cls, path: str | Path) -> Self:
        return cls(profile=load_profile(path))

    def classify(self, text: str) -> Classification:
        text = text or ""
        if text:
            for rule in self._config.rules:
                if evaluate_condition(text, rule.condition):
                    return Classification(
                        prediction=rule.prediction,
                        confidence=round(rule.confidence, 3),
                        rule_id=rule.id,
                    )
        return Classification(
            prediction=self._config.default_prediction,
            confidence=round(self._config.default_confidence, 3),
        )

    def classify_many(self, texts: list[str]) -> list[Classification]:
        return [self.classify(text) for text in texts]
