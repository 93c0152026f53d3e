"""Baseline: issues, workers and citizen posts.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Issues ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS issues (
            id VARCHAR(36) PRIMARY KEY,
            category VARCHAR(128) NOT NULL DEFAULT '',
            department VARCHAR(32) NOT NULL,
            priority VARCHAR(16) NOT NULL DEFAULT 'Medium',
            summary TEXT NOT NULL DEFAULT '',
            description TEXT NOT NULL DEFAULT '',
            status VARCHAR(32) NOT NULL DEFAULT 'unassigned',
            proof_status VARCHAR(16) NOT NULL DEFAULT 'none',
            escalation JSONB,
            assigned_personnel_id VARCHAR(128),
            assigned_personnel_name VARCHAR(128),
            proof_of_work JSONB NOT NULL DEFAULT '[]',
            geo_data JSONB,
            reported_at TIMESTAMPTZ NOT NULL,
            assigned_at TIMESTAMPTZ,
            last_updated TIMESTAMPTZ NOT NULL,
            last_updated_by VARCHAR(128),
            submitted_at TIMESTAMPTZ,
            original_post_id VARCHAR(128),
            related_posts JSONB NOT NULL DEFAULT '[]',
            version INTEGER NOT NULL DEFAULT 1,
            CONSTRAINT ck_issues_proof_status
                CHECK (proof_status IN ('none', 'pending', 'approved', 'rejected'))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_issues_assignee
        ON issues(assigned_personnel_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_issues_assignee_proof
        ON issues(assigned_personnel_id, proof_status)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_issues_last_updated
        ON issues(last_updated DESC)
    """)

    # --- Workers ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS workers (
            uid VARCHAR(128) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            department_id VARCHAR(32) NOT NULL,
            department_name VARCHAR(128) NOT NULL DEFAULT '',
            active BOOLEAN NOT NULL DEFAULT true,
            civic_score INTEGER NOT NULL DEFAULT 0,
            tasks_completed INTEGER NOT NULL DEFAULT 0,
            earned_badges INTEGER NOT NULL DEFAULT 0,
            metrics_cached_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_workers_active
        ON workers(active)
    """)

    # --- Citizen posts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS posts (
            id VARCHAR(128) PRIMARY KEY,
            uid VARCHAR(128) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            status VARCHAR(32) NOT NULL DEFAULT 'working',
            ai_category VARCHAR(128),
            ai_priority VARCHAR(16),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS posts")
    op.execute("DROP TABLE IF EXISTS workers")
    op.execute("DROP TABLE IF EXISTS issues")
