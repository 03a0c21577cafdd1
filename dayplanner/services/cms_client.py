"""
Day Planner Backend — Sanity CMS Client
========================================

What:  Minimal async client for the Sanity HTTP API (GROQ queries + patches).
How:   httpx.AsyncClient with bearer-token auth, tenacity retry with
       exponential backoff + jitter, and a circuit breaker in front.
Who:   ReminderService (due reminders, their events, marking reminders sent)
       and the /health route.

Endpoints used:
    GET  https://<project>.api.sanity.io/v<version>/data/query/<dataset>
         ?query=<GROQ>&$param=<json>
    POST https://<project>.api.sanity.io/v<version>/data/mutate/<dataset>
         {"mutations": [{"patch": {"id": ..., "set": {...}}}]}

    With sanity_use_cdn=True queries go to apicdn.sanity.io instead; mutations
    always go to the live API host.

Resilience:
    1. Circuit breaker rejects calls instantly after repeated failures
    2. Tenacity retries transport errors, 429 and 5xx responses
    3. Other 4xx responses (bad GROQ, bad token) fail immediately
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from dayplanner.config import settings
from dayplanner.exceptions import CircuitBreakerOpenError, CMSServiceError

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding the CMS.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe; the service runs as a single async process.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Raises CircuitBreakerOpenError while the circuit is OPEN and the
        recovery timeout has not elapsed; otherwise returns True.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Sanity Client
# ══════════════════════════════════════════════════════════════════════════

class RetryableCMSError(Exception):
    """Internal marker: a response worth retrying (429 / 5xx)."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"CMS responded with HTTP {status_code}")


RETRYABLE_ERRORS = (httpx.TransportError, RetryableCMSError)


class SanityClient:
    """
    Async Sanity client.

    Args:
        transport: Optional httpx transport; tests pass an httpx.MockTransport.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    # ── URLs ──────────────────────────────────────────────────────────────

    def _base_url(self, use_cdn: bool) -> str:
        host = "apicdn" if use_cdn else "api"
        return (
            f"https://{settings.sanity_project_id}.{host}.sanity.io"
            f"/v{settings.sanity_api_version}"
        )

    @property
    def query_url(self) -> str:
        return f"{self._base_url(settings.sanity_use_cdn)}/data/query/{settings.sanity_dataset}"

    @property
    def mutate_url(self) -> str:
        return f"{self._base_url(False)}/data/mutate/{settings.sanity_dataset}"

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if settings.sanity_api_token:
                headers["Authorization"] = f"Bearer {settings.sanity_api_token}"
            self._client = httpx.AsyncClient(
                headers=headers,
                timeout=settings.cms_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── Public API ────────────────────────────────────────────────────────

    async def fetch(self, query: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Runs a GROQ query and returns its `result` member.

        Query parameters are sent JSON-encoded as `$name`, matching the
        Sanity HTTP API; values are never interpolated into the query text.
        """
        request_params = {"query": query}
        for name, value in (params or {}).items():
            request_params[f"${name}"] = json.dumps(value)

        payload = await self._execute("GET", self.query_url, params=request_params)
        return payload.get("result")

    async def patch_set(self, document_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Applies a `set` patch to one document and returns the transaction summary."""
        body = {"mutations": [{"patch": {"id": document_id, "set": fields}}]}
        return await self._execute(
            "POST",
            self.mutate_url,
            params={"returnIds": "true", "visibility": "sync"},
            json_body=body,
        )

    async def health_check(self) -> bool:
        """Runs a trivial query; never raises."""
        if not settings.sanity_project_id:
            return False
        try:
            response = await self.client.get(self.query_url, params={"query": "count(*[false])"})
            return response.status_code < 500
        except httpx.HTTPError as e:
            logger.warning("CMS health check failed: %s", e)
            return False

    # ── Internals ─────────────────────────────────────────────────────────

    async def _execute(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Circuit breaker + retry wrapper around one HTTP call.

        Raises:
            CircuitBreakerOpenError: circuit is open
            CMSServiceError: non-retryable 4xx, undecodable body, or retries exhausted
        """
        self.circuit_breaker.can_execute()

        try:
            payload = await self._request_with_retry(method, url, params, json_body)
        except RETRYABLE_ERRORS as e:
            self.circuit_breaker.record_failure()
            logger.error("CMS %s %s failed after retries: %s", method, url, e)
            raise CMSServiceError(
                message="Content service failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"attempts": settings.retry_max_attempts, "error_type": type(e).__name__},
            )
        except CMSServiceError:
            # The CMS answered, so it is reachable; the request itself was wrong
            self.circuit_breaker.record_success()
            raise

        self.circuit_breaker.record_success()
        return payload

    @retry(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_random_exponential(
            multiplier=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _request_with_retry(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, str]],
        json_body: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        start_time = time.perf_counter()
        response = await self.client.request(method, url, params=params, json=json_body)
        duration_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code == 429 or response.status_code >= 500:
            logger.warning(
                "CMS %s returned %d after %.0fms", method, response.status_code, duration_ms
            )
            raise RetryableCMSError(response.status_code, response.text[:500])

        if response.status_code >= 400:
            logger.error(
                "CMS %s rejected request with %d: %s",
                method,
                response.status_code,
                response.text[:500],
            )
            raise CMSServiceError(
                message="Content service rejected the request",
                context={"status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError:
            raise CMSServiceError(
                message="Content service returned an unreadable response",
                context={"status_code": response.status_code},
            )

        logger.debug("CMS %s completed in %.0fms", method, duration_ms)
        return payload if isinstance(payload, dict) else {"result": payload}


def result_list(value: Any) -> List[Dict[str, Any]]:
    """Normalizes a GROQ array result (None → [])."""
    if not value:
        return []
    return [item for item in value if isinstance(item, dict)]


sanity_client = SanityClient()
