"""xrpc sessions

Revision ID: 5c2e91d0a7f3
Revises:
Create Date: 2026-10-18 10:02:11.418205

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c2e91d0a7f3"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "xrpc_sessions",
        sa.Column("key", sa.String(512), primary_key=True),
        sa.Column("did", sa.String(512), nullable=False),
        sa.Column("handle", sa.String(512), nullable=False),
        sa.Column("access_token", sa.String(1024), nullable=False),
        sa.Column("refresh_token", sa.String(1024), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_xrpc_sessions_did", "xrpc_sessions", ["did"])


def downgrade() -> None:
    op.drop_index("idx_xrpc_sessions_did", "xrpc_sessions")
    op.drop_table("xrpc_sessions")
