# pickup_api/tables.py
# Single declaration of the schema; shared by the services and by Alembic autogenerate.
import sqlalchemy as sa

metadata = sa.MetaData()

UTF8 = {"mysql_charset": "utf8mb4", "mysql_collate": "utf8mb4_unicode_ci"}

organizations = sa.Table(
    "organizations",
    metadata,
    sa.Column("organization_id", sa.String(36), primary_key=True),
    sa.Column("name", sa.String(255), nullable=False, unique=True),
    sa.Column("contact_phone", sa.String(32), nullable=True),
    sa.Column("address", sa.Text(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    **UTF8,
)

collectors = sa.Table(
    "collectors",
    metadata,
    sa.Column("collector_id", sa.String(36), primary_key=True),
    sa.Column(
        "organization_id",
        sa.String(36),
        sa.ForeignKey("organizations.organization_id", ondelete="RESTRICT"),
        nullable=False,
    ),
    sa.Column("full_name", sa.String(255), nullable=False),
    sa.Column("phone", sa.String(32), nullable=False),
    sa.Column("last_lat", sa.Float(), nullable=True),
    sa.Column("last_lng", sa.Float(), nullable=True),
    sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Index("idx_collectors_org", "organization_id"),
    **UTF8,
)

pickups = sa.Table(
    "pickups",
    metadata,
    sa.Column("pickup_id", sa.String(36), primary_key=True),
    sa.Column("requester_id", sa.String(64), nullable=False),
    sa.Column("category", sa.String(128), nullable=False),
    sa.Column("quantity_kg", sa.Float(), nullable=False),
    sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=False),
    sa.Column("note", sa.Text(), nullable=True),
    sa.Column("lat", sa.Float(), nullable=False),
    sa.Column("lng", sa.Float(), nullable=False),
    sa.Column("status", sa.String(16), nullable=False),
    # RESTRICT: MySQL refuses CHECK constraints on columns with SET NULL actions
    sa.Column(
        "assigned_collector_id",
        sa.String(36),
        sa.ForeignKey("collectors.collector_id", ondelete="RESTRICT"),
        nullable=True,
    ),
    sa.Column("version", sa.Integer(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.CheckConstraint("quantity_kg > 0", name="ck_pickups_quantity"),
    sa.CheckConstraint(
        "(status IN ('PENDING','CANCELLED') AND assigned_collector_id IS NULL)"
        " OR (status IN ('ACCEPTED','IN_PROGRESS','COMPLETED') AND assigned_collector_id IS NOT NULL)",
        name="ck_pickups_assignment",
    ),
    sa.Index("idx_pickups_status_created", "status", "created_at"),
    sa.Index("idx_pickups_collector", "assigned_collector_id"),
    sa.Index("idx_pickups_requester_created", "requester_id", "created_at"),
    **UTF8,
)

audit_logs = sa.Table(
    "audit_logs",
    metadata,
    sa.Column("log_id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), primary_key=True, autoincrement=True),
    sa.Column("actor_id", sa.String(64), nullable=True),
    sa.Column("actor_role", sa.String(16), nullable=True),
    sa.Column("action", sa.String(64), nullable=False),
    sa.Column("pickup_id", sa.String(36), nullable=True),
    sa.Column("details", sa.JSON(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Index("idx_audit_pickup_created", "pickup_id", "created_at"),
    **UTF8,
)

listings = sa.Table(
    "listings",
    metadata,
    sa.Column("listing_id", sa.String(36), primary_key=True),
    sa.Column("title", sa.String(255), nullable=False),
    sa.Column("description", sa.Text(), nullable=False),
    sa.Column("price_per_kg", sa.Float(), nullable=False),
    sa.Column("lat", sa.Float(), nullable=True),
    sa.Column("lng", sa.Float(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Index("idx_listings_created", "created_at"),
    **UTF8,
)
