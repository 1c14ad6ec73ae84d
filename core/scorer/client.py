"""Scoring service client with connection reuse and retry logic."""

import dataclasses
import logging
import threading
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError
from tenacity import (
    RetryError,
    retry,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception,
    before_sleep_log
)

from core.eligibility.models import ScholarshipRecord, StudentRecord
from core.scorer.interfaces import MatchScorer, ScoringError
from core.scorer.models import MatchScore

logger = logging.getLogger(__name__)


def _is_retryable_error(exc: BaseException) -> bool:
    """
    Only retries on timeouts, 5xx responses and connection errors.
    Client errors (4xx) are not retried.
    """
    if isinstance(exc, requests.Timeout):
        return True

    if isinstance(exc, requests.RequestException):
        response = getattr(exc, 'response', None)
        if response is not None:
            return response.status_code >= 500
        return True

    return False


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def build_score_request(student: StudentRecord, scholarship: ScholarshipRecord) -> Dict[str, Any]:
    return {
        'student': _to_jsonable(dataclasses.asdict(student)),
        'scholarship': {
            'id': scholarship.id,
            'name': scholarship.name,
            'provider': scholarship.provider,
            'award_amount': scholarship.award_amount,
            'deadline': _to_jsonable(scholarship.deadline),
            'eligibility_criteria': scholarship.criteria.model_dump(mode='json', by_alias=True, exclude_none=True),
        },
    }


class ScoringServiceClient(MatchScorer):
    """
    Client for the scoring service with connection pooling and retry logic.

    Responsibilities:
    - Own one requests.Session per calling thread for connection reuse;
      the matching run scores a batch from several worker threads
    - POST one eligible pair per call to ``{base_url}/score``
    - Validate the response into a MatchScore
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        request_timeout_seconds: int = 30,
        api_key: Optional[str] = None
    ):
        """
        Initialize scoring client.

        Args:
            base_url: Base URL for the scoring service
            request_timeout_seconds: Timeout for individual HTTP requests
            api_key: Optional bearer token
        """
        self.base_url = (base_url or "http://localhost:8100").rstrip('/')
        self.request_timeout_seconds = request_timeout_seconds
        self.api_key = api_key

        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

        logger.info(
            f"ScoringServiceClient initialized: base_url={self.base_url}, "
            f"request_timeout={request_timeout_seconds}s"
        )

    @property
    def session(self) -> requests.Session:
        """Session bound to the calling thread, created on first use."""
        session = getattr(self._local, 'session', None)
        if session is None:
            session = requests.Session()
            if self.api_key:
                session.headers['Authorization'] = f"Bearer {self.api_key}"
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(2),
        retry=retry_if_exception(_is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING)
    )
    def _post_score(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(
            f"{self.base_url}/score",
            json=payload,
            timeout=self.request_timeout_seconds
        )
        response.raise_for_status()
        return response.json()

    def score(self, student: StudentRecord, scholarship: ScholarshipRecord) -> MatchScore:
        payload = build_score_request(student, scholarship)
        try:
            data = self._post_score(payload)
            return MatchScore.model_validate(data)
        except RetryError as e:
            raise ScoringError(
                f"Scoring service unavailable for student={student.id} scholarship={scholarship.id}"
            ) from e.last_attempt.exception()
        except requests.RequestException as e:
            raise ScoringError(
                f"Scoring request rejected for student={student.id} scholarship={scholarship.id}: {e}"
            ) from e
        except (ValueError, ValidationError) as e:
            raise ScoringError(
                f"Invalid score payload for student={student.id} scholarship={scholarship.id}: {e}"
            ) from e

    def close(self) -> None:
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()
