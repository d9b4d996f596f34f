"""HTTP client for the EDWIND API.

Used by scripts and integrations that talk to a running backend. The
client carries the session cookies of a signed-in user and retries
idempotent GET requests on timeouts, connection errors and 5xx responses
with exponential backoff. Other methods are sent exactly once.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger("edwind.client")

RETRYABLE_METHODS = ("GET",)


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: Optional[int], message: str, payload: Any = None):
        self.status_code = status_code
        self.message = message
        self.payload = payload
        super().__init__(f"{status_code}: {message}")


class EdwindClient:
    def __init__(self, base_url: str, user_id: Optional[str] = None, access_token: Optional[str] = None,
                 session_id: Optional[str] = None, timeout: float = 30.0, max_retries: int = 3,
                 backoff_factor: float = 0.5, max_backoff: float = 8.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.max_backoff = max_backoff
        self.session = session or requests.Session()
        cookies = {
            "workos_user_id": user_id,
            "workos_access_token": access_token,
            "workos_session_id": session_id,
        }
        for name, value in cookies.items():
            if value:
                self.session.cookies.set(name, value)

    def _backoff(self, attempt: int) -> float:
        return min(self.max_backoff, self.backoff_factor * (2 ** attempt))

    def request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body.

        Raises `ApiError` for non-2xx responses and for transport errors
        once retries are exhausted.
        """
        method = method.upper()
        url = f"{self.base_url}{path}"
        attempts = self.max_retries + 1 if method in RETRYABLE_METHODS else 1
        kwargs.setdefault("timeout", self.timeout)
        for attempt in range(attempts):
            last = attempt == attempts - 1
            try:
                resp = self.session.request(method, url, **kwargs)
            except (requests.Timeout, requests.ConnectionError) as exc:
                if last:
                    raise ApiError(None, f"request failed: {exc}") from exc
                delay = self._backoff(attempt)
                logger.warning("retrying %s %s after %s (%.2fs)", method, path, exc.__class__.__name__, delay)
                time.sleep(delay)
                continue
            if resp.status_code >= 500 and not last:
                delay = self._backoff(attempt)
                logger.warning("retrying %s %s after status %s (%.2fs)", method, path, resp.status_code, delay)
                time.sleep(delay)
                continue
            return self._handle(resp)

    def _handle(self, resp: requests.Response) -> Any:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if resp.status_code >= 300:
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiError(resp.status_code, message or resp.reason or "request failed", body)
        return body

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    # score cards

    def record_score(self, course_assessment_id: int, participant_id: int, score_earned: float,
                     score_maximum: float, **extra) -> dict:
        payload = {
            "course_assessment_id": course_assessment_id,
            "participant_id": participant_id,
            "score_earned": score_earned,
            "score_maximum": score_maximum,
            **extra,
        }
        return self.post("/api/score-cards/recordScore", json=payload)

    def participant_scores(self, participant_id: int, course_id: Optional[int] = None,
                           current_only: bool = False) -> dict:
        params = {"participantId": participant_id, "currentOnly": str(current_only).lower()}
        if course_id is not None:
            params["courseId"] = course_id
        return self.get("/api/score-cards/getParticipantScores", params=params)

    def attempt_history(self, assessment_id: int, participant_id: int) -> dict:
        return self.get("/api/score-cards/getAttemptHistory",
                        params={"assessmentId": assessment_id, "participantId": participant_id})

    def override_score(self, score_id: int, passed: bool, reason: str) -> dict:
        return self.post("/api/score-cards/overrideScore",
                         json={"score_id": score_id, "passed": passed, "override_reason": reason})

    def project_assessments(self, project_id: int) -> dict:
        return self.get("/api/score-cards/getProjectAssessments", params={"projectId": project_id})

    def health(self) -> dict:
        return self.get("/health")
