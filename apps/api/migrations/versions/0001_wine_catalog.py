"""wine catalog: do/grape/users, wine aggregate tables, reviews

Revision ID: 0001_wine_catalog
Revises:
Create Date: 2026-03-01
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_wine_catalog"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ---- reference data ----
    op.create_table(
        "do",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("region", sa.Text(), nullable=False),
        sa.Column("country", sa.Text(), nullable=False),
        sa.Column("country_code", sa.String(2), nullable=False),
        sa.UniqueConstraint("country", "name", name="uq_do_country_name"),
    )

    op.create_table(
        "grape",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
        sa.Column("color", sa.Text(), nullable=False),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("lastname", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Text(), nullable=False),
    )

    # ---- wine aggregate ----
    op.create_table(
        "wine",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("winery", sa.Text(), nullable=True),
        sa.Column("wine_type", sa.Text(), nullable=True),
        sa.Column("do_id", sa.Integer(), sa.ForeignKey("do.id"), nullable=True),
        sa.Column("country", sa.Text(), nullable=True),
        sa.Column("aging_type", sa.Text(), nullable=True),
        sa.Column("vintage_year", sa.Integer(), nullable=True),
        sa.Column("alcohol_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("created_at", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.Text(), nullable=False),
    )
    op.create_index("ix_wine_winery_name_vintage", "wine", ["winery", "name", "vintage_year"], unique=False)
    op.create_index("ix_wine_country_do", "wine", ["country", "do_id"], unique=False)

    op.create_table(
        "wine_grape",
        sa.Column("wine_id", sa.Integer(), sa.ForeignKey("wine.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("grape_id", sa.Integer(), sa.ForeignKey("grape.id"), primary_key=True),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=True),
    )

    op.create_table(
        "place",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("place_type", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("country", sa.Text(), nullable=False),
    )

    op.create_table(
        "wine_purchase",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wine_id", sa.Integer(), sa.ForeignKey("wine.id", ondelete="CASCADE"), nullable=False),
        sa.Column("place_id", sa.Integer(), sa.ForeignKey("place.id"), nullable=False),
        sa.Column("price_paid", sa.Numeric(10, 2), nullable=False),
        sa.Column("purchased_at", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Text(), nullable=False),
    )
    op.create_index(
        "ix_wine_purchase_wine_purchased_at", "wine_purchase", ["wine_id", "purchased_at"], unique=False
    )

    op.create_table(
        "wine_award",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wine_id", sa.Integer(), sa.ForeignKey("wine.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("score", sa.Numeric(5, 2), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
    )
    op.create_index("ix_wine_award_wine_name_year", "wine_award", ["wine_id", "name", "year"], unique=False)

    op.create_table(
        "wine_photo",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wine_id", sa.Integer(), sa.ForeignKey("wine.id", ondelete="CASCADE"), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=True),
        sa.Column("hash", sa.String(16), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("extension", sa.Text(), nullable=False),
    )
    op.create_index(
        "uq_wine_photo_wine_type",
        "wine_photo",
        ["wine_id", "type"],
        unique=True,
        sqlite_where=sa.text("type IS NOT NULL"),
        postgresql_where=sa.text("type IS NOT NULL"),
    )

    # ---- reviews ----
    op.create_table(
        "review",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("wine_id", sa.Integer(), sa.ForeignKey("wine.id", ondelete="CASCADE"), nullable=False),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("intensity_aroma", sa.Integer(), nullable=False),
        sa.Column("sweetness", sa.Integer(), nullable=False),
        sa.Column("acidity", sa.Integer(), nullable=False),
        sa.Column("tannin", sa.Integer(), nullable=True),
        sa.Column("body", sa.Integer(), nullable=False),
        sa.Column("persistence", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.Text(), nullable=False),
        sa.UniqueConstraint("user_id", "wine_id", name="uq_review_user_wine"),
    )
    op.create_index("ix_review_wine_id", "review", ["wine_id"], unique=False)

    op.create_table(
        "review_bullets",
        sa.Column("review_id", sa.Integer(), sa.ForeignKey("review.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("bullet", sa.String(32), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table("review_bullets")
    op.drop_index("ix_review_wine_id", table_name="review")
    op.drop_table("review")
    op.drop_index("uq_wine_photo_wine_type", table_name="wine_photo")
    op.drop_table("wine_photo")
    op.drop_index("ix_wine_award_wine_name_year", table_name="wine_award")
    op.drop_table("wine_award")
    op.drop_index("ix_wine_purchase_wine_purchased_at", table_name="wine_purchase")
    op.drop_table("wine_purchase")
    op.drop_table("place")
    op.drop_table("wine_grape")
    op.drop_index("ix_wine_country_do", table_name="wine")
    op.drop_index("ix_wine_winery_name_vintage", table_name="wine")
    op.drop_table("wine")
    op.drop_table("users")
    op.drop_table("grape")
    op.drop_table("do")
