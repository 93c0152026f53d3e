"""Classifier gateway: turns a citizen report into department, priority and summary.

The classifier itself is an opaque external service. It answers a POST of
``{"text": ...}`` with either

    {"department": "water", "priority": "High", "summary": "..."}

or ``{"rejected": true, "reason": "..."}`` when the report is not a civic issue.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict

from civictask.errors import DataUnavailable, Timeout
from civictask.store.records import Department, Priority

logger = logging.getLogger(__name__)

DEPARTMENTS: dict[Department, dict[str, Any]] = {
    Department.PWD: {"name": "Public Works Department", "priority": Priority.HIGH},
    Department.WATER: {"name": "Water Supply & Sewage", "priority": Priority.HIGH},
    Department.SWM: {"name": "Solid Waste Management", "priority": Priority.MEDIUM},
    Department.TRAFFIC: {"name": "Traffic Police / Transport", "priority": Priority.HIGH},
    Department.HEALTH: {"name": "Health & Sanitation", "priority": Priority.HIGH},
    Department.ENVIRONMENT: {"name": "Environment & Parks", "priority": Priority.MEDIUM},
    Department.ELECTRICITY: {"name": "Electricity Department", "priority": Priority.HIGH},
    Department.DISASTER: {"name": "Disaster Management", "priority": Priority.CRITICAL},
}

SUMMARY_FALLBACK_LENGTH = 100


class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    department: Department
    priority: Priority
    summary: str

    @property
    def category(self) -> str:
        return DEPARTMENTS[self.department]["name"]


class ClassificationRejected(Exception):
    """The classifier decided the report is not a civic issue."""

    def __init__(self, reason: str = "Not a civic issue") -> None:
        super().__init__(reason)
        self.reason = reason


class Classifier(Protocol):
    async def classify(self, text: str) -> Classification: ...


def parse_classification(body: Any, text: str) -> Classification:
    """Validate a classifier response body.

    A missing priority falls back to the department default and a missing
    summary to the start of the report text. An unknown department code is
    treated as a rejection.
    """
    if not isinstance(body, dict) or body.get("rejected"):
        reason = body.get("reason") if isinstance(body, dict) else None
        raise ClassificationRejected(reason or "Not a civic issue")

    code = str(body.get("department", "")).strip().lower()
    try:
        department = Department(code)
    except ValueError:
        raise ClassificationRejected(f"Unknown department '{code}'") from None

    raw_priority = str(body.get("priority") or "").strip().capitalize()
    try:
        priority = Priority(raw_priority)
    except ValueError:
        priority = DEPARTMENTS[department]["priority"]

    summary = str(body.get("summary") or "").strip() or text[:SUMMARY_FALLBACK_LENGTH]
    return Classification(department=department, priority=priority, summary=summary)


class HttpClassifier:
    """Calls the classifier service over HTTP."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def classify(self, text: str) -> Classification:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(self.url, json={"text": text}, headers=headers)
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as exc:
            raise Timeout(f"Classifier did not answer within {self.timeout_seconds}s") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Classifier call failed", exc_info=True)
            raise DataUnavailable("Classifier unavailable") from exc

        return parse_classification(body, text)
