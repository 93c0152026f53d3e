"""Issue store contract and its SQLAlchemy implementation."""

from civictask.store.base import IssueStore
from civictask.store.sql import SqlIssueStore

__all__ = ["IssueStore", "SqlIssueStore"]
