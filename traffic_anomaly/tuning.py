"""Threshold calibration and classifier evaluation over labeled cases."""

import logging
from typing import Iterable, Protocol, Sequence

from .clock import Clock, MonotonicClock
from .exceptions import InsufficientInput, MalformedResponse, TransportFailure
from .models import (
    AnomalyScore,
    Classification,
    ClassifierMetrics,
    ConfusionCounts,
    LabeledCase,
    ThresholdReport,
    ThresholdResult,
)
from .scorer import ClassificationModel, RuleClassifier, RuleScorer, ScoringModel

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_CANDIDATES = (0.1, 0.3, 0.5, 0.7, 0.9)

DEFAULT_TUNING_CASES = (
    LabeledCase("normal behavior", False),
    LabeledCase("' OR '1'='1' UNION SELECT * FROM users", True),
    LabeledCase("<script>alert(1)</script>", True),
    LabeledCase("regular user login", False),
    LabeledCase("admin password; DROP TABLE users", True),
)

DEFAULT_CLASSIFICATION_CASES = (
    LabeledCase("normal login", False),
    LabeledCase("normal search", False),
    LabeledCase("normal navigation", False),
    LabeledCase("admin' OR '1'='1", True),
    LabeledCase("<script>alert(1)</script>", True),
    LabeledCase("rapid requests", True),
    LabeledCase("directory traversal ../../../", True),
    LabeledCase("normal comment", False),
)


class AsyncScoringModel(Protocol):
    async def score(self, text: str, threshold: float = 0.5) -> AnomalyScore: ...


class AsyncClassificationModel(Protocol):
    async def classify(self, text: str) -> Classification: ...


def tally(pairs: Iterable[tuple[bool, bool]]) -> ConfusionCounts:
    """Build confusion counts from (predicted_attack, actual_attack) pairs."""
    tp = fp = tn = fn = 0
    for predicted, actual in pairs:
        if predicted and actual:
            tp += 1
        elif predicted:
            fp += 1
        elif actual:
            fn += 1
        else:
            tn += 1
    return ConfusionCounts(
        true_positives=tp,
        false_positives=fp,
        true_negatives=tn,
        false_negatives=fn,
    )


def select_optimal(results: Sequence[ThresholdResult], current_threshold: float = 0.5) -> ThresholdReport:
    """Pick the highest-F1 threshold; the earliest candidate wins ties."""
    if not results:
        raise InsufficientInput("Threshold tuning requires at least one candidate")
    best = results[0]
    for result in results[1:]:
        if result.counts.f1 > best.counts.f1:
            best = result
    return ThresholdReport(
        current_threshold=current_threshold,
        optimal_threshold=best.threshold,
        sensitivity_analysis=tuple(results),
    )


def tune_threshold(
    cases: Sequence[LabeledCase],
    candidates: Sequence[float] = DEFAULT_THRESHOLD_CANDIDATES,
    scorer: ScoringModel | None = None,
    current_threshold: float = 0.5,
) -> ThresholdReport:
    """Sweep candidate thresholds and report confusion counts for each."""
    if not candidates:
        raise InsufficientInput("Threshold tuning requires at least one candidate")
    scorer = scorer or RuleScorer()

    results = []
    for threshold in candidates:
        counts = tally(
            (scorer.score(case.input, threshold).is_anomaly, case.expected_is_attack)
            for case in cases
        )
        logger.debug("threshold=%s f1=%.3f counts=%s", threshold, counts.f1, counts)
        results.append(ThresholdResult(threshold=threshold, counts=counts))

    report = select_optimal(results, current_threshold)
    logger.info("Optimal threshold %s (F1 %.3f)", report.optimal_threshold, report.optimal_f1)
    return report


async def tune_threshold_async(
    cases: Sequence[LabeledCase],
    candidates: Sequence[float],
    scorer: AsyncScoringModel,
    current_threshold: float = 0.5,
    pause_ms: float = 10,
    clock: Clock | None = None,
) -> ThresholdReport:
    """Threshold sweep against a live scoring service.

    A case whose call fails is counted as predicted normal, so the sweep
    always completes even under partial request failure.
    """
    if not candidates:
        raise InsufficientInput("Threshold tuning requires at least one candidate")
    clock = clock or MonotonicClock()

    results = []
    for threshold in candidates:
        pairs = []
        for case in cases:
            try:
                predicted = (await scorer.score(case.input, threshold)).is_anomaly
            except (TransportFailure, MalformedResponse) as exc:
                logger.warning(
                    "Prediction failed for %r at threshold %s, assuming normal: %s",
                    case.input, threshold, exc,
                )
                predicted = False
            pairs.append((predicted, case.expected_is_attack))
            await clock.sleep(pause_ms)
        results.append(ThresholdResult(threshold=threshold, counts=tally(pairs)))

    return select_optimal(results, current_threshold)


def classifier_metrics(counts: ConfusionCounts) -> ClassifierMetrics:
    return ClassifierMetrics(
        precision=round(counts.precision, 2),
        recall=round(counts.recall, 2),
        f1=round(counts.f1, 2),
        accuracy=round(counts.accuracy, 2),
        false_positive_rate=round(counts.false_positive_rate, 2),
        false_negative_rate=round(counts.false_negative_rate, 2),
    )


def evaluate_classifier(
    cases: Sequence[LabeledCase] = DEFAULT_CLASSIFICATION_CASES,
    classifier: ClassificationModel | None = None,
) -> ClassifierMetrics:
    """Accuracy and error rates of a classifier over labeled cases."""
    classifier = classifier or RuleClassifier()
    counts = tally(
        (classifier.classify(case.input).is_attack, case.expected_is_attack)
        for case in cases
    )
    return classifier_metrics(counts)


async def evaluate_classifier_async(
    cases: Sequence[LabeledCase],
    classifier: AsyncClassificationModel,
    pause_ms: float = 50,
    clock: Clock | None = None,
) -> ClassifierMetrics:
    """Like evaluate_classifier, for a live service; failed calls count as normal."""
    clock = clock or MonotonicClock()
    pairs = []
    for case in cases:
        try:
            predicted = (await classifier.classify(case.input)).is_attack
        except TransportFailure as exc:
            logger.warning("Classification failed for %r, assuming normal: %s", case.input, exc)
            predicted = False
        pairs.append((predicted, case.expected_is_attack))
        await clock.sleep(pause_ms)
    return classifier_metrics(tally(pairs))
