"""Backfill users.email_credits / users.plan and forbid negative credit counts.

Rows created by the Supabase signup trigger before the credit gate existed
can have NULL email_credits or plan. The gate reads NULL as 0 / freemium;
this makes the stored data agree and adds the non-negative check.

Revision ID: 002_email_credits_non_negative
Revises: 001_initial
Create Date: 2026-09-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "002_email_credits_non_negative"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(sa.text("UPDATE users SET email_credits = 0 WHERE email_credits IS NULL"))
    op.execute(sa.text("UPDATE users SET plan = 'freemium' WHERE plan IS NULL"))
    op.execute(sa.text("""
        DO $$
        BEGIN
            IF NOT EXISTS (
                SELECT 1 FROM pg_constraint WHERE conname = 'ck_users_email_credits_non_negative'
            ) THEN
                ALTER TABLE users
                    ADD CONSTRAINT ck_users_email_credits_non_negative CHECK (email_credits >= 0);
            END IF;
        END $$;
    """))


def downgrade() -> None:
    op.execute(sa.text(
        "ALTER TABLE users DROP CONSTRAINT IF EXISTS ck_users_email_credits_non_negative"
    ))
