"""pickup dispatch baseline

Revision ID: 3c9e51a7d2b4
Revises:
Create Date: 2025-11-03 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c9e51a7d2b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


UTF8 = {"mysql_charset": "utf8mb4", "mysql_collate": "utf8mb4_unicode_ci"}
TS = sa.DateTime(timezone=True)

def upgrade() -> None:
    # --- organizations ---
    op.create_table(
        "organizations",
        sa.Column("organization_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("contact_phone", sa.String(32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        **UTF8
    )

    # --- collectors (last known position lives on the row) ---
    op.create_table(
        "collectors",
        sa.Column("collector_id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), sa.ForeignKey("organizations.organization_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("last_lat", sa.Float(), nullable=True),
        sa.Column("last_lng", sa.Float(), nullable=True),
        sa.Column("last_seen_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        **UTF8
    )
    op.create_index("idx_collectors_org", "collectors", ["organization_id"])

    # --- pickups ---
    op.create_table(
        "pickups",
        sa.Column("pickup_id", sa.String(36), primary_key=True),
        sa.Column("requester_id", sa.String(64), nullable=False),
        sa.Column("category", sa.String(128), nullable=False),
        sa.Column("quantity_kg", sa.Float(), nullable=False),
        sa.Column("scheduled_time", TS, nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("lat", sa.Float(), nullable=False),
        sa.Column("lng", sa.Float(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),  # PENDING | ACCEPTED | IN_PROGRESS | COMPLETED | CANCELLED
        sa.Column("assigned_collector_id", sa.String(36), sa.ForeignKey("collectors.collector_id", ondelete="RESTRICT"), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.CheckConstraint("quantity_kg > 0", name="ck_pickups_quantity"),
        sa.CheckConstraint(
            "(status IN ('PENDING','CANCELLED') AND assigned_collector_id IS NULL)"
            " OR (status IN ('ACCEPTED','IN_PROGRESS','COMPLETED') AND assigned_collector_id IS NOT NULL)",
            name="ck_pickups_assignment",
        ),
        **UTF8
    )
    op.create_index("idx_pickups_status_created", "pickups", ["status", "created_at"])
    op.create_index("idx_pickups_collector", "pickups", ["assigned_collector_id"])
    op.create_index("idx_pickups_requester_created", "pickups", ["requester_id", "created_at"])

    # --- audit_logs ---
    op.create_table(
        "audit_logs",
        sa.Column("log_id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.String(64), nullable=True),
        sa.Column("actor_role", sa.String(16), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("pickup_id", sa.String(36), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        **UTF8
    )
    op.create_index("idx_audit_pickup_created", "audit_logs", ["pickup_id", "created_at"])

    # --- listings ---
    op.create_table(
        "listings",
        sa.Column("listing_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("price_per_kg", sa.Float(), nullable=False),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        **UTF8
    )
    op.create_index("idx_listings_created", "listings", ["created_at"])

def downgrade() -> None:
    op.drop_index("idx_listings_created", table_name="listings")
    op.drop_table("listings")
    op.drop_index("idx_audit_pickup_created", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("idx_pickups_requester_created", table_name="pickups")
    op.drop_index("idx_pickups_collector", table_name="pickups")
    op.drop_index("idx_pickups_status_created", table_name="pickups")
    op.drop_table("pickups")
    op.drop_index("idx_collectors_org", table_name="collectors")
    op.drop_table("collectors")
    op.drop_table("organizations")
