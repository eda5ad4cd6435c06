"""
RecipeShare Backend — TheMealDB Client
========================================

What:  Async client for the public TheMealDB JSON API (search, categories,
       filter by category/ingredient, lookup by ID).
How:   One shared httpx.AsyncClient, tenacity retries with exponential backoff
       and jitter for transient failures, and a circuit breaker so a dead
       upstream fails fast instead of tying up every request for the full
       retry budget.
Who:   Created once at import; used by routes/external.py (behind the
       response cache) and routes/health.py.

Resilience Strategy:
    1. Retry transport errors (connect/read timeouts, resets) and upstream
       5xx/429 responses. Other 4xx responses are not retried.
    2. After all attempts fail the breaker records one failure and the caller
       gets UpstreamServiceError (→ 502) with a route-specific message.
    3. After cb_failure_threshold consecutive failures the breaker opens and
       calls raise CircuitBreakerOpenError (→ 503) until cb_recovery_timeout
       has elapsed.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from recipeshare.config import settings
from recipeshare.exceptions import CircuitBreakerOpenError, UpstreamServiceError
from recipeshare.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN
        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN
        HALF_OPEN (testing recovery)
            → Allow the next request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe; uvicorn's async workers share one event loop per process.
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
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if circuit is OPEN and recovery timeout hasn't elapsed.
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
            remaining = max(1, int(self.recovery_timeout - elapsed))
            raise CircuitBreakerOpenError(recovery_time=remaining)

        # HALF_OPEN: allow the test request through
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


def _is_retryable(exc: BaseException) -> bool:
    """Transport failures and upstream 5xx/429 are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status >= 500 or status == 429
    return False


# ══════════════════════════════════════════════════════════════════════════
# TheMealDB Client
# ══════════════════════════════════════════════════════════════════════════

class MealDBClient:
    """
    Thin async wrapper over TheMealDB endpoints.

    TheMealDB answers "nothing found" with HTTP 200 and `{"meals": null}`;
    those come back as an empty list (or None for a single lookup).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        max_attempts: Optional[int] = None,
        min_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.mealdb_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.mealdb_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        self.max_attempts = max_attempts if max_attempts is not None else settings.retry_max_attempts
        self.min_wait = min_wait if min_wait is not None else settings.retry_min_wait
        self.max_wait = max_wait if max_wait is not None else settings.retry_max_wait

        logger.info(
            "MealDBClient initialized with base_url=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds), retries=%d",
            self.base_url,
            self.circuit_breaker.failure_threshold,
            self.circuit_breaker.recovery_timeout,
            self.max_attempts,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url + "/",
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    # ── Public API ────────────────────────────────────────────────────────

    async def search_meals(self, query: str) -> List[Dict[str, Any]]:
        data = await self._get_json("search.php", {"s": query}, "Failed to fetch recipes")
        return data.get("meals") or []

    async def list_categories(self) -> List[Dict[str, Any]]:
        data = await self._get_json("categories.php", None, "Failed to fetch categories")
        return data.get("categories") or []

    async def filter_by_category(self, category: str) -> List[Dict[str, Any]]:
        data = await self._get_json(
            "filter.php", {"c": category}, "Failed to fetch recipes by category"
        )
        return data.get("meals") or []

    async def filter_by_ingredient(self, ingredient: str) -> List[Dict[str, Any]]:
        data = await self._get_json(
            "filter.php", {"i": ingredient}, "Failed to fetch recipes by ingredient"
        )
        return data.get("meals") or []

    async def lookup_meal(self, meal_id: str) -> Optional[Dict[str, Any]]:
        data = await self._get_json("lookup.php", {"i": meal_id}, "Failed to fetch recipe details")
        meals = data.get("meals")
        return meals[0] if meals else None

    # ── Internals ─────────────────────────────────────────────────────────

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, str]],
        error_message: str,
    ) -> Dict[str, Any]:
        """
        Circuit breaker check → retried GET → breaker bookkeeping.

        Raises:
            CircuitBreakerOpenError: breaker is open
            UpstreamServiceError: all attempts failed, or the body was not a JSON object
        """
        rid = request_id_var.get("")
        self.circuit_breaker.can_execute()

        try:
            data = await self._get_with_retry(path, params, rid)
        except (httpx.HTTPError, ValueError) as e:
            # A 4xx other than 429 is an answer about the request, not an outage
            if not isinstance(e, httpx.HTTPStatusError) or _is_retryable(e):
                self.circuit_breaker.record_failure()
            context: Dict[str, Any] = {"path": path, "error_type": type(e).__name__}
            if isinstance(e, httpx.HTTPStatusError):
                context["upstream_status"] = e.response.status_code
            logger.error("[%s] TheMealDB %s failed: %s", rid, path, str(e))
            raise UpstreamServiceError(message=error_message, context=context)

        self.circuit_breaker.record_success()
        return data

    async def _get_with_retry(
        self,
        path: str,
        params: Optional[Dict[str, str]],
        rid: str,
    ) -> Dict[str, Any]:
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.min_wait,
                max=self.max_wait,
                jitter=min(1.0, self.max_wait),
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                start_time = time.perf_counter()
                response = await self.client.get(path, params=params)
                response.raise_for_status()
                data = response.json()
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.info(
                    "[%s] TheMealDB %s answered %d in %.0fms",
                    rid,
                    path,
                    response.status_code,
                    duration_ms,
                )
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected TheMealDB payload type: {type(data).__name__}")
        return data


# ── Singleton Instance ────────────────────────────────────────────────────
# Shared so the circuit breaker state and connection pool span all requests
mealdb_client = MealDBClient()


def get_mealdb_client() -> MealDBClient:
    """FastAPI dependency; overridden in tests with a MockTransport-backed client."""
    return mealdb_client
