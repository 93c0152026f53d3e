"""Push issue lifecycle events over Redis pub/sub for per-worker delivery."""

from __future__ import annotations

import json
import logging

from civictask.lifecycle.states import display_status
from civictask.store.records import Issue

logger = logging.getLogger(__name__)


def worker_channel(worker_id: str) -> str:
    return f"ws:worker:{worker_id}"


def build_issue_event(issue: Issue, event: str) -> dict:
    """Payload published to the assignee's channel after a transition."""
    return {
        "event": event,
        "data": {
            "issue_id": issue.id,
            "summary": issue.summary,
            "status": issue.status.value,
            "proof_status": issue.proof_status.value,
            "display_status": display_status(issue).value,
            "priority": issue.priority.value,
            "version": issue.version,
            "timestamp": issue.last_updated.isoformat(),
        },
    }


async def publish_issue_event(redis: object | None, issue: Issue, event: str) -> None:
    """Publish an issue event to ws:worker:{assignee}.

    No-op when Redis is not configured or the issue has no assignee.
    Delivery is best-effort: a failed publish is logged and dropped.
    """
    if redis is None or issue.assigned_personnel is None:
        return

    channel = worker_channel(issue.assigned_personnel.id)
    try:
        await redis.publish(  # type: ignore[union-attr]
            channel,
            json.dumps(build_issue_event(issue, event)),
        )
    except Exception:
        logger.warning("Failed to publish %s via %s", event, channel, exc_info=True)
