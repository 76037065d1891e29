"""Backfill legacy usernames

Revision ID: 002
Revises: 001
Create Date: 2024-04-18 00:00:00.000000+00:00

What:  Gives every account without a username the handle `user_<id>`, then
       makes users.username NOT NULL and unique.
How:   The backfill only touches rows whose username is NULL or blank, so
       running it again is a no-op. The handle uses the first 24 hex
       digits of the id to stay within the 30-character limit.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

users = sa.table(
    "users",
    sa.column("id", sa.Uuid()),
    sa.column("username", sa.String(30)),
)


def legacy_username(user_id) -> str:
    return f"user_{user_id.hex[:24]}"


def upgrade() -> None:
    bind = op.get_bind()
    missing = bind.execute(
        sa.select(users.c.id).where(
            sa.or_(users.c.username.is_(None), sa.func.trim(users.c.username) == "")
        )
    ).scalars().all()

    for user_id in missing:
        bind.execute(
            users.update()
            .where(users.c.id == user_id)
            .values(username=legacy_username(user_id))
        )

    with op.batch_alter_table("users") as batch:
        batch.alter_column("username", existing_type=sa.String(30), nullable=False)
    op.create_index("uq_users_username", "users", ["username"], unique=True)


def downgrade() -> None:
    """Relaxes the column again; backfilled handles are kept."""
    op.drop_index("uq_users_username", table_name="users")
    with op.batch_alter_table("users") as batch:
        batch.alter_column("username", existing_type=sa.String(30), nullable=True)
