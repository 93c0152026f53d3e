"""Issue store contract consumed by the engines.

Implementations must raise the typed failures from ``civictask.errors``:
``NotFound`` for missing records, ``Conflict`` when ``expected_version`` no
longer matches, ``DataUnavailable`` when a query fails and ``Timeout`` when a
call exceeds its deadline.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from civictask.store.records import CachedMetrics, Issue, IssueDraft, ProofStatus, Worker


class IssueStore(Protocol):
    async def get_issue(self, issue_id: str) -> Issue: ...

    async def create_issue(self, draft: IssueDraft) -> Issue: ...

    async def query_issues_by_assignee(self, worker_id: str) -> Sequence[Issue]: ...

    async def query_issues_by_assignee_and_proof_status(
        self, worker_id: str, status: ProofStatus,
    ) -> Sequence[Issue]: ...

    async def query_recent_issues_by_assignee(self, worker_id: str, limit: int) -> Sequence[Issue]: ...

    async def update_issue_fields(
        self,
        issue_id: str,
        fields: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> Issue: ...

    async def get_worker(self, uid: str) -> Worker: ...

    async def query_active_workers(self) -> Sequence[Worker]: ...

    async def set_worker_active(self, uid: str, active: bool) -> Worker: ...

    async def cache_worker_metrics(self, uid: str, metrics: CachedMetrics) -> None: ...

    async def mirror_status_to_origin_post(self, post_id: str, status: str) -> None: ...
