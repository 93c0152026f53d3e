"""Report intake: classify a citizen report and open an issue for it."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from civictask.errors import ValidationError
from civictask.intake.classifier import Classifier
from civictask.lifecycle.engine import LifecycleEngine
from civictask.store.records import GeoData, Issue, IssueDraft

logger = logging.getLogger(__name__)


async def submit_report(
    engine: LifecycleEngine,
    classifier: Classifier,
    description: str,
    post_id: str | None = None,
    geo_data: GeoData | None = None,
) -> Issue:
    """Create an unassigned issue from a report.

    Raises ClassificationRejected when the classifier refuses the report;
    no issue is created in that case.
    """
    text = (description or "").strip()
    if not text:
        raise ValidationError("Report description must not be empty")

    classification = await classifier.classify(text)

    draft = IssueDraft(
        category=classification.category,
        department=classification.department,
        priority=classification.priority,
        summary=classification.summary,
        description=text,
        reported_at=datetime.now(timezone.utc),
        geo_data=geo_data,
        original_post_id=post_id,
        related_posts=(post_id,) if post_id else (),
    )
    issue = await engine.open_issue(draft)
    logger.info("Report from post %s routed to %s as issue %s", post_id, issue.department.value, issue.id)
    return issue
