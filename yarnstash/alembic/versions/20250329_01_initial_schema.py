"""initial schema

Revision ID: 20250329_01
Revises:
Create Date: 2025-03-29 02:08:20

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20250329_01"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("image", sa.String(length=2048), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "organization_types",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("is_system", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_organization_types_owner_id"),
        "organization_types",
        ["owner_id"],
        unique=False,
    )

    op.create_table(
        "yarns",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("brand", sa.String(length=120), nullable=False),
        sa.Column("product_line", sa.String(length=255), nullable=False),
        sa.Column("previous_color", sa.String(length=255), nullable=True),
        sa.Column("current_color", sa.String(length=255), nullable=True),
        sa.Column("next_color", sa.String(length=255), nullable=True),
        sa.Column("dye_state", sa.String(length=20), nullable=False),
        sa.Column("materials", sa.String(length=255), nullable=False),
        sa.Column("weight", sa.Integer(), nullable=False),
        sa.Column("yards_per_oz", sa.String(length=40), nullable=False),
        sa.Column("total_weight", sa.Float(), nullable=False),
        sa.Column("total_yards", sa.Float(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_yarns_created_at"), "yarns", ["created_at"], unique=False)
    op.create_index(op.f("ix_yarns_updated_at"), "yarns", ["updated_at"], unique=False)
    op.create_index(op.f("ix_yarns_owner_id"), "yarns", ["owner_id"], unique=False)

    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_projects_name"), "projects", ["name"], unique=False)
    op.create_index(
        op.f("ix_projects_created_at"), "projects", ["created_at"], unique=False
    )
    op.create_index(
        op.f("ix_projects_updated_at"), "projects", ["updated_at"], unique=False
    )
    op.create_index(
        op.f("ix_projects_owner_id"), "projects", ["owner_id"], unique=False
    )

    op.create_table(
        "project_yarns",
        sa.Column("project_id", sa.String(length=36), nullable=False),
        sa.Column("yarn_id", sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["yarn_id"], ["yarns.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("project_id", "yarn_id"),
    )

    op.create_table(
        "tags",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("yarn_id", sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(["yarn_id"], ["yarns.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_tags_name"), "tags", ["name"], unique=False)
    op.create_index(op.f("ix_tags_yarn_id"), "tags", ["yarn_id"], unique=False)

    op.create_table(
        "organization_entries",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("yarn_id", sa.String(length=36), nullable=False),
        sa.Column("type_id", sa.String(length=36), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_organization_entries_quantity"),
        sa.ForeignKeyConstraint(["yarn_id"], ["yarns.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["type_id"], ["organization_types.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_organization_entries_yarn_id"),
        "organization_entries",
        ["yarn_id"],
        unique=False,
    )

    op.create_table(
        "photos",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("key", sa.String(length=512), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("content_type", sa.String(length=120), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("yarn_id", sa.String(length=36), nullable=True),
        sa.Column("project_id", sa.String(length=36), nullable=True),
        sa.CheckConstraint(
            "(yarn_id IS NULL) <> (project_id IS NULL)",
            name="ck_photos_single_owner",
        ),
        sa.ForeignKeyConstraint(["yarn_id"], ["yarns.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key"),
    )
    op.create_index(op.f("ix_photos_yarn_id"), "photos", ["yarn_id"], unique=False)
    op.create_index(
        op.f("ix_photos_project_id"), "photos", ["project_id"], unique=False
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor_user_id", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=20), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["actor_user_id"], ["users.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("actor_user_id", "entity_type", "entity_id", "action", "created_at"):
        op.create_index(
            op.f(f"ix_audit_logs_{column}"), "audit_logs", [column], unique=False
        )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("photos")
    op.drop_table("organization_entries")
    op.drop_table("tags")
    op.drop_table("project_yarns")
    op.drop_table("projects")
    op.drop_table("yarns")
    op.drop_table("organization_types")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
