"""HTTP client for the analysis service.

One public call, submit(), hides the whole exchange:

    submit() → POST /v1/reviews ──terminal──────────────→ AnalysisResponse
                     └─pending─→ GET /v1/reviews/{id} ... ┘

Every HTTP call goes through _request_with_retry(), which owns the retry
contract: transient failures (connection errors, 5xx, 429) back off
exponentially and are retried up to MAX_RETRIES times; anything else fails
on the spot. A single wall-clock deadline covers the submit, all retries
and all polling, and running past it raises AnalysisTimedOut.

Sleeping and the clock are injectable so tests never actually wait.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import requests

from revgate_core.config import ServiceSettings
from revgate_core.errors import AnalysisTimedOut, PermanentServiceError, TransientServiceError
from revgate_core.models import PENDING_STATUSES, AnalysisRequest, AnalysisResponse, AnalysisStatus

logger = logging.getLogger(__name__)

_USER_AGENT = "revgate"
_TERMINAL_STATUSES = frozenset(s.value for s in AnalysisStatus)
_ERROR_TEXT_LIMIT = 500


def _retry_after(response: requests.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        # HTTP-date form; fall back to the computed backoff.
        return None


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if body.get(key):
                return str(body[key])
    return (response.text or response.reason or "").strip()[:_ERROR_TEXT_LIMIT]


class ReviewClient:
    def __init__(
        self,
        settings: ServiceSettings,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.max_retries = settings.max_retries
        self.session = session if session is not None else requests.Session()
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def submit(self, request: AnalysisRequest) -> AnalysisResponse:
        """Submit a review and block until the service reports a terminal status."""
        deadline = self._clock() + self.settings.timeout
        headers = self._headers(request.credential)

        logger.info(
            "Submitting %d file(s) for review of %s@%s (rulesets: %s)",
            len(request.files),
            request.repository,
            request.revision[:7],
            ", ".join(request.rulesets),
        )
        status_code, body = self._request_with_retry(
            "POST", self._url("/v1/reviews"), deadline, headers=headers, json=request.to_payload()
        )

        while not self._is_terminal(status_code, body):
            review_id = body.get("review_id")
            if not review_id:
                raise PermanentServiceError("Service returned a pending review without a review_id.", status_code)
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise AnalysisTimedOut(f"Review {review_id} did not finish within {self.settings.timeout:g}s.")
            logger.debug("Review %s is %s; polling again in %.1fs", review_id, body.get("status"), self.settings.poll_interval)
            self._sleep(min(self.settings.poll_interval, remaining))
            status_code, body = self._request_with_retry(
                "GET", self._url(f"/v1/reviews/{review_id}"), deadline, headers=headers
            )

        try:
            response = AnalysisResponse.from_payload(body)
        except (KeyError, TypeError, ValueError) as e:
            raise PermanentServiceError(f"Malformed analysis response: {e}", status_code)
        logger.info(
            "Review %s finished: %s, score %.2f, %d violation(s)",
            response.review_id,
            response.status.value,
            response.score,
            len(response.violations),
        )
        return response

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> ReviewClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Retry and transport                                                  #
    # ------------------------------------------------------------------ #

    def _request_with_retry(self, method: str, url: str, deadline: float, **kwargs) -> tuple[int, dict]:
        """Send one logical request, retrying transient failures with exponential backoff.

        Makes at most MAX_RETRIES + 1 attempts. The delay before retry n
        (0-based) is base_delay * backoff**n, lengthened by Retry-After when
        the service asks for more, and never allowed to run past the deadline.
        """
        for attempt in range(self.max_retries + 1):
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise AnalysisTimedOut(f"No terminal reply from the analysis service within {self.settings.timeout:g}s.")
            try:
                return self._send(method, url, remaining, **kwargs)
            except TransientServiceError as e:
                if attempt == self.max_retries:
                    logger.error("Analysis service failed after %d attempts: %s", attempt + 1, e)
                    raise
                delay = self.settings.base_delay * self.settings.backoff**attempt
                if e.retry_after is not None:
                    delay = max(delay, e.retry_after)
                if self._clock() + delay >= deadline:
                    raise AnalysisTimedOut(
                        f"Retry budget exhausted: next attempt would exceed the {self.settings.timeout:g}s timeout ({e})."
                    )
                logger.warning(
                    "Analysis service error (attempt %d/%d): %s. Retrying in %gs...",
                    attempt + 1,
                    self.max_retries + 1,
                    e,
                    delay,
                )
                self._sleep(delay)
        raise AssertionError("unreachable")

    def _send(self, method: str, url: str, remaining: float, **kwargs) -> tuple[int, dict]:
        """Make a single HTTP call and classify the outcome."""
        try:
            response = self.session.request(method, url, timeout=remaining, **kwargs)
        except requests.Timeout as e:
            raise TransientServiceError(f"Request timed out: {e}")
        except requests.ConnectionError as e:
            raise TransientServiceError(f"Connection error: {e}")
        except (requests.exceptions.ChunkedEncodingError, requests.exceptions.ContentDecodingError) as e:
            # The connection dropped or garbled the body after the status line.
            raise TransientServiceError(f"Incomplete response: {e}")
        except requests.RequestException as e:
            raise PermanentServiceError(f"Request to the analysis service failed: {e}")

        code = response.status_code
        if code == 429 or code >= 500:
            raise TransientServiceError(
                f"HTTP {code}: {_error_message(response)}", status_code=code, retry_after=_retry_after(response)
            )
        if code in (401, 403):
            raise PermanentServiceError(f"Credential rejected (HTTP {code}): {_error_message(response)}", code)
        if code >= 400:
            raise PermanentServiceError(f"Request rejected (HTTP {code}): {_error_message(response)}", code)

        try:
            body = response.json()
        except ValueError:
            raise PermanentServiceError(f"Analysis service returned non-JSON body (HTTP {code}).", code)
        if not isinstance(body, dict):
            raise PermanentServiceError(f"Analysis service returned a non-object body (HTTP {code}).", code)
        return code, body

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _url(self, path: str) -> str:
        return self.settings.api_url.rstrip("/") + path

    @staticmethod
    def _headers(credential: str) -> dict:
        return {
            "Authorization": f"Bearer {credential}",
            "Accept": "application/json",
            "User-Agent": _USER_AGENT,
        }

    @staticmethod
    def _is_terminal(status_code: int, body: dict) -> bool:
        status = str(body.get("status") or "").upper()
        if status in _TERMINAL_STATUSES:
            return True
        if status_code == 202 or status in PENDING_STATUSES:
            return False
        raise PermanentServiceError(f"Unknown review status {body.get('status')!r}.", status_code)
