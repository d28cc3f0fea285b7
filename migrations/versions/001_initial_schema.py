"""Initial schema: profiles, children, ride requests, rides, ratings,
transactions and notifications.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── profiles ──────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "role",
            sa.Enum("parent", "driver", name="userrole"),
            nullable=False,
        ),
        sa.Column("name", sa.String(120), nullable=False, server_default=""),
        sa.Column("surname", sa.String(120), nullable=False, server_default=""),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("wallet_balance", sa.Float, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_profiles_role", "profiles", ["role"])

    # ── children ──────────────────────────────────────────────────────
    op.create_table(
        "children",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "parent_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("surname", sa.String(120), nullable=False, server_default=""),
        sa.Column("school_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("school_address", sa.String(255), nullable=False, server_default=""),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_children_parent", "children", ["parent_id"])

    # ── ride_requests ─────────────────────────────────────────────────
    op.create_table(
        "ride_requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "parent_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column(
            "child_id", sa.Integer, sa.ForeignKey("children.id"), nullable=False
        ),
        sa.Column("pickup_address", sa.String(255), nullable=False),
        sa.Column("dropoff_address", sa.String(255), nullable=False),
        sa.Column("pickup_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("price", sa.Float, nullable=False),
        sa.Column(
            "status",
            sa.Enum("requested", "accepted", "cancelled", name="riderequeststatus"),
            nullable=False,
            server_default="requested",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_ride_requests_status_pickup",
        "ride_requests",
        ["status", "pickup_time"],
    )
    op.create_index("idx_ride_requests_parent", "ride_requests", ["parent_id"])

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "request_id",
            sa.Integer,
            sa.ForeignKey("ride_requests.id"),
            unique=True,
            nullable=False,
        ),
        sa.Column(
            "parent_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column(
            "child_id", sa.Integer, sa.ForeignKey("children.id"), nullable=False
        ),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("pickup_address", sa.String(255), nullable=False),
        sa.Column("dropoff_address", sa.String(255), nullable=False),
        sa.Column("pickup_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("dropoff_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "accepted",
                "inProgress",
                "completed",
                "cancelled",
                name="ridestatus",
            ),
            nullable=False,
            server_default="accepted",
        ),
        sa.Column("otp", sa.String(6), nullable=False),
        sa.Column("price", sa.Float, nullable=False),
        sa.Column("driver_location_lat", sa.Float, nullable=True),
        sa.Column("driver_location_lng", sa.Float, nullable=True),
        sa.Column("driver_location_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        # dropoff_time is set exactly when the ride is completed
        sa.CheckConstraint(
            "(status = 'completed') = (dropoff_time IS NOT NULL)",
            name="ck_rides_dropoff_iff_completed",
        ),
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_parent", "rides", ["parent_id"])
    op.create_index("idx_rides_driver", "rides", ["driver_id"])
    op.create_index("idx_rides_pickup_time", "rides", ["pickup_time"])

    # ── ratings ───────────────────────────────────────────────────────
    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "ride_id",
            sa.Integer,
            sa.ForeignKey("rides.id"),
            unique=True,
            nullable=False,
        ),
        sa.Column(
            "parent_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("parent_rating", sa.Integer, nullable=True),
        sa.Column("parent_comment", sa.Text, nullable=True),
        sa.Column("driver_rating", sa.Integer, nullable=True),
        sa.Column("driver_comment", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── transactions ──────────────────────────────────────────────────
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("ride_id", sa.Integer, sa.ForeignKey("rides.id"), nullable=False),
        sa.Column(
            "type",
            sa.Enum("ride_payment", name="transactiontype"),
            nullable=False,
            server_default="ride_payment",
        ),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("ride_id", "type", name="uq_transactions_ride_type"),
    )
    op.create_index("idx_transactions_user", "transactions", ["user_id"])

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("title", sa.String(120), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column(
            "kind",
            sa.Enum(
                "ride_accepted",
                "ride_inProgress",
                "ride_completed",
                "ride_cancelled",
                name="notificationkind",
            ),
            nullable=False,
        ),
        sa.Column("reference_id", sa.Integer, nullable=True),
        sa.Column("reference_type", sa.String(32), nullable=True),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_notifications_user", "notifications", ["user_id", "is_read"]
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("transactions")
    op.drop_table("ratings")
    op.drop_table("rides")
    op.drop_table("ride_requests")
    op.drop_table("children")
    op.drop_table("profiles")
    op.execute("DROP TYPE IF EXISTS notificationkind")
    op.execute("DROP TYPE IF EXISTS transactiontype")
    op.execute("DROP TYPE IF EXISTS ridestatus")
    op.execute("DROP TYPE IF EXISTS riderequeststatus")
    op.execute("DROP TYPE IF EXISTS userrole")
