"""Initial schema: owners, content_items, snapshots, deltas, iteration_records

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "owners",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "content_items",
        sa.Column("id", sa.String(128), nullable=False),
        sa.Column("asset_tag", sa.String(255), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content_type", sa.String(32), nullable=True),
        sa.Column("publish_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("permalink", sa.String(500), nullable=True),
        sa.Column("page_id", sa.String(128), nullable=True),
        sa.Column("page_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(16), server_default="live", nullable=False),
        sa.Column("removed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("owner_id", sa.String(64), nullable=True),
        sa.Column("iteration_number", sa.Integer(), server_default="1", nullable=False),
        sa.Column("original_item_id", sa.String(128), nullable=True),
        sa.Column("previous_iteration_id", sa.String(128), nullable=True),
        sa.Column("lifetime_views", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("views_source", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["owner_id"], ["owners.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["previous_iteration_id"], ["content_items.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_content_items_asset_tag", "content_items", ["asset_tag"])
    op.create_index("ix_content_items_publish_time", "content_items", ["publish_time"])
    op.create_index("ix_content_items_status", "content_items", ["status"])
    op.create_index("ix_content_items_owner_id", "content_items", ["owner_id"])
    op.create_index("ix_content_items_original_item_id", "content_items", ["original_item_id"])
    # Lineage lookup: removed items by exact title + type
    op.create_index(
        "ix_content_items_lineage_lookup",
        "content_items",
        ["status", "content_type", "title"],
        postgresql_where=sa.text("status = 'removed'"),
    )

    op.create_table(
        "snapshots",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("item_id", sa.String(128), nullable=False),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column("lifetime_earnings", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("lifetime_qualified_views", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("lifetime_seconds_viewed", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("three_second_views", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("one_minute_views", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("views", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("views_source", sa.String(50), nullable=True),
        sa.Column("reactions", sa.Integer(), server_default="0", nullable=False),
        sa.Column("comments", sa.Integer(), server_default="0", nullable=False),
        sa.Column("shares", sa.Integer(), server_default="0", nullable=False),
        sa.Column("avg_seconds_viewed", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("earnings_column", sa.String(16), nullable=True),
        sa.Column("quarter_range", sa.String(16), nullable=True),
        sa.Column("data_source", sa.String(32), server_default="csv", nullable=False),
        sa.Column("raw_data", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["item_id"], ["content_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("item_id", "snapshot_date", name="ux_snapshots_item_date"),
    )
    op.create_index("ix_snapshots_snapshot_date", "snapshots", ["snapshot_date"])
    op.create_index("ix_snapshots_quarter_range", "snapshots", ["quarter_range"])

    op.create_table(
        "deltas",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("item_id", sa.String(128), nullable=False),
        sa.Column("from_date", sa.Date(), nullable=False),
        sa.Column("to_date", sa.Date(), nullable=False),
        sa.Column("earnings_delta", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("qualified_views_delta", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("seconds_viewed_delta", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["item_id"], ["content_items.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["owner_id"], ["owners.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("item_id", "from_date", "to_date", name="ux_deltas_item_from_to"),
    )
    op.create_index("ix_deltas_to_date", "deltas", ["to_date"])

    op.create_table(
        "iteration_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("original_item_id", sa.String(128), nullable=False),
        sa.Column("current_item_id", sa.String(128), nullable=False),
        sa.Column("iteration_number", sa.Integer(), nullable=False),
        sa.Column("upload_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("removal_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["current_item_id"], ["content_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("current_item_id"),
    )
    op.create_index("ix_iteration_records_original_item_id", "iteration_records", ["original_item_id"])


def downgrade() -> None:
    op.drop_table("iteration_records")
    op.drop_table("deltas")
    op.drop_table("snapshots")
    op.drop_index("ix_content_items_lineage_lookup", table_name="content_items")
    op.drop_table("content_items")
    op.drop_table("owners")
