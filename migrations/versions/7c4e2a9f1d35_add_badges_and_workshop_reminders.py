"""Add badges and the workshop reminder flag.

Revision ID: 7c4e2a9f1d35
Revises: 3f1c9a7d2b10
Create Date: 2025-03-16 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "7c4e2a9f1d35"
down_revision = "3f1c9a7d2b10"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "workshops",
        sa.Column(
            "reminder_sent",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
    )

    op.create_table(
        "badges",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("workshop_id", sa.Integer(), nullable=False),
        sa.Column("awarded_by_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("image", sa.String(length=512), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("awarded_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["workshop_id"], ["workshops.id"]),
        sa.ForeignKeyConstraint(["awarded_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "workshop_id", name="uq_badges_user_workshop"),
    )
    op.create_index(op.f("ix_badges_user_id"), "badges", ["user_id"], unique=False)
    op.create_index(op.f("ix_badges_workshop_id"), "badges", ["workshop_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_badges_workshop_id"), table_name="badges")
    op.drop_index(op.f("ix_badges_user_id"), table_name="badges")
    op.drop_table("badges")
    op.drop_column("workshops", "reminder_sent")
