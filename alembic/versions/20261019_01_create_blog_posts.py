"""Create blog_posts table.

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19 00:00:00
"""

# pylint: disable=invalid-name,missing-module-docstring

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create blog_posts table."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    # Databases bootstrapped by the app lifespan already have the table
    if inspector.has_table("blog_posts"):
        return

    op.create_table(
        "blog_posts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("author", sa.Text(), nullable=False),
        sa.Column("publication_date", sa.DateTime(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index(
        op.f("ix_blog_posts_publication_date"),
        "blog_posts",
        ["publication_date"],
        unique=False,
    )


def downgrade():
    """Drop blog_posts table."""
    op.drop_index(op.f("ix_blog_posts_publication_date"), table_name="blog_posts")
    op.drop_table("blog_posts")
