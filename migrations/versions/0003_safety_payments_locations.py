"""add payments, alcohol_tests, driver_feedback, driver_ratings, locations

Revision ID: 0003_safety_payments_locations
Revises: 0002_pickup_order_fcm_token
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0003_safety_payments_locations"
down_revision = "0002_pickup_order_fcm_token"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("chapa_transaction_id", sa.String(50), nullable=True),
        sa.Column("payment_method", sa.String(20), nullable=True),
        sa.Column(
            "status",
            sa.Enum("pending", "completed", "failed", name="payment_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("chapa_transaction_id"),
    )
    op.create_index("ix_payments_parent_id", "payments", ["parent_id"])
    op.create_index("ix_payments_student_id", "payments", ["student_id"])
    op.create_index("ix_payments_timestamp", "payments", ["timestamp"])

    op.create_table(
        "alcohol_tests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("driver_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bus_id", sa.Integer(), sa.ForeignKey("buses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("alcohol_level", sa.Numeric(5, 3), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("latitude", sa.Numeric(10, 8), nullable=True),
        sa.Column("longitude", sa.Numeric(11, 8), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_alcohol_tests_driver_id", "alcohol_tests", ["driver_id"])
    op.create_index("ix_alcohol_tests_bus_id", "alcohol_tests", ["bus_id"])
    op.create_index("ix_alcohol_tests_timestamp", "alcohol_tests", ["timestamp"])

    op.create_table(
        "driver_feedback",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("driver_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="check_rating"),
    )
    op.create_index("ix_driver_feedback_driver_id", "driver_feedback", ["driver_id"])
    op.create_index("ix_driver_feedback_parent_id", "driver_feedback", ["parent_id"])
    op.create_index("ix_driver_feedback_timestamp", "driver_feedback", ["timestamp"])

    op.create_table(
        "driver_ratings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("driver_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("safety_compliance_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("parental_feedback_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("operational_performance_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("overall_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("missed_pickups", sa.Integer(), nullable=True),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "driver_id", "period_start", "period_end", name="driver_ratings_driver_period_unique"
        ),
    )
    op.create_index("ix_driver_ratings_driver_id", "driver_ratings", ["driver_id"])

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bus_id", sa.Integer(), sa.ForeignKey("buses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("latitude", sa.Numeric(10, 8), nullable=False),
        sa.Column("longitude", sa.Numeric(11, 8), nullable=False),
        sa.Column("speed", sa.Numeric(5, 2), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("locations_bus_id_timestamp_idx", "locations", ["bus_id", "timestamp"])


def downgrade():
    op.drop_table("locations")
    op.drop_table("driver_ratings")
    op.drop_table("driver_feedback")
    op.drop_table("alcohol_tests")
    op.drop_table("payments")
    sa.Enum(name="payment_status").drop(op.get_bind(), checkfirst=True)
