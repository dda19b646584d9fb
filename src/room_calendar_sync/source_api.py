"""
HTTP client for the scheduling API (the source of record).
"""

import logging
import time
from datetime import date
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

import requests

from room_calendar_sync.models import SourceApiError

logger = logging.getLogger(__name__)

# Status codes worth another attempt; every other 4xx is the caller's fault.
_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class SourceApiClient:
    """Read-only client for rooms, meetings and instructors."""

    def __init__(
        self,
        base_path: str,
        access_key: str,
        timeout: int = 30,
        max_retries: int = 3,
        backoff: float = 1.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_path = base_path.rstrip("/")
        self.access_key = access_key
        self.timeout = timeout
        self.max_retries = max(max_retries, 1)
        self.backoff = backoff
        self.session = session or requests.Session()

    def list_meetings(self, room_number: str, start: date, end: date) -> List[Dict[str, Any]]:
        """Return meeting summaries booked in a room between start and end."""
        payload = self._get(
            f"rooms/{room_number}/meetings",
            {"startDate": start.isoformat(), "endDate": end.isoformat()},
        )
        if isinstance(payload, dict):
            payload = payload.get("meetings", [])
        if not isinstance(payload, list):
            raise SourceApiError(f"Unexpected meeting list for room {room_number}")
        return payload

    def get_meeting(self, meeting_id: str) -> Dict[str, Any]:
        return self._get_object(f"meetings/{meeting_id}")

    def get_instructor(self, instructor_id: str) -> Dict[str, Any]:
        return self._get_object(f"instructors/{instructor_id}")

    def _get_object(self, path: str) -> Dict[str, Any]:
        payload = self._get(path)
        if not isinstance(payload, dict):
            raise SourceApiError(f"Unexpected response for {path}")
        return payload

    def _get(self, path: str, params: Optional[Dict[str, str]] = None):
        """GET a JSON document, retrying transport failures with backoff.

        Raises:
            SourceApiError: on a client error, or once every attempt failed
        """
        url = f"{self.base_path}/{path}"
        query = dict(params or {})
        query["apikey"] = self.access_key

        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, params=query, timeout=self.timeout)
                if response.status_code in _RETRYABLE_STATUS:
                    raise requests.HTTPError(
                        f"{response.status_code} Server Error for {path}", response=response
                    )
                if response.status_code >= 400:
                    raise SourceApiError(
                        f"GET {path} failed: HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                return response.json()

            except requests.JSONDecodeError as e:
                raise SourceApiError(f"GET {path} returned invalid JSON: {e}") from e

            except (requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema,
                    requests.exceptions.InvalidURL) as e:
                raise SourceApiError(f"Bad scheduling API URL {url}: {e}") from e

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = self.backoff * (2 ** attempt)
                    logger.warning(
                        f"GET {path} failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(f"GET {path}: all {self.max_retries} attempts failed: {e}")
                    status = e.response.status_code if e.response is not None else None
                    raise SourceApiError(f"GET {path} failed: {e}", status_code=status) from e
