"""initial schema: users, schools, buses, routes, students, assignments, rfid, geofences, attendance, notifications

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-12-29 14:37:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("username", sa.String(50), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("role", sa.String(32), nullable=False, server_default="parent"),
        sa.Column("language_preference", sa.String(10), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "schools",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Numeric(10, 8), nullable=True),
        sa.Column("longitude", sa.Numeric(11, 8), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "buses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bus_number", sa.String(20), nullable=False),
        sa.Column("driver_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("schools.id", ondelete="SET NULL"), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("bus_number"),
    )
    op.create_index("ix_buses_driver_id", "buses", ["driver_id"])
    op.create_index("ix_buses_school_id", "buses", ["school_id"])

    op.create_table(
        "routes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bus_id", sa.Integer(), sa.ForeignKey("buses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_routes_bus_id", "routes", ["bus_id"])

    op.create_table(
        "students",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("grade", sa.String(20), nullable=True),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("home_latitude", sa.Numeric(10, 8), nullable=True),
        sa.Column("home_longitude", sa.Numeric(11, 8), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_students_parent_id", "students", ["parent_id"])

    op.create_table(
        "route_assignments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("route_id", sa.Integer(), sa.ForeignKey("routes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("pickup_latitude", sa.Numeric(10, 8), nullable=True),
        sa.Column("pickup_longitude", sa.Numeric(11, 8), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("route_id", "student_id", name="route_assignments_route_id_student_id_unique"),
    )

    op.create_table(
        "rfid_cards",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("rfid_tag", sa.String(50), nullable=False),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("issued_at", sa.DateTime(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("rfid_tag"),
    )
    op.create_index("ix_rfid_cards_student_id", "rfid_cards", ["student_id"])

    op.create_table(
        "geofences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.Enum("school", "home", name="geofence_type"), nullable=False),
        sa.Column("latitude", sa.Numeric(10, 8), nullable=False),
        sa.Column("longitude", sa.Numeric(11, 8), nullable=False),
        sa.Column("radius_meters", sa.Integer(), nullable=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=True),
        sa.Column("bus_id", sa.Integer(), sa.ForeignKey("buses.id", ondelete="CASCADE"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_geofences_student_id", "geofences", ["student_id"])
    op.create_index("ix_geofences_bus_id", "geofences", ["bus_id"])

    op.create_table(
        "attendance",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bus_id", sa.Integer(), sa.ForeignKey("buses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rfid_card_id", sa.Integer(), sa.ForeignKey("rfid_cards.id", ondelete="SET NULL"), nullable=True),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("latitude", sa.Numeric(10, 8), nullable=True),
        sa.Column("longitude", sa.Numeric(11, 8), nullable=True),
        sa.Column("geofence_id", sa.Integer(), sa.ForeignKey("geofences.id", ondelete="SET NULL"), nullable=True),
        sa.Column("manual_override", sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_attendance_student_id", "attendance", ["student_id"])
    op.create_index("ix_attendance_bus_id", "attendance", ["bus_id"])
    op.create_index("ix_attendance_timestamp", "attendance", ["timestamp"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("sent_at", sa.DateTime(), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_sent_at", "notifications", ["sent_at"])


def downgrade():
    op.drop_table("notifications")
    op.drop_table("attendance")
    op.drop_table("geofences")
    op.drop_table("rfid_cards")
    op.drop_table("route_assignments")
    op.drop_table("students")
    op.drop_table("routes")
    op.drop_table("buses")
    op.drop_table("schools")
    op.drop_table("users")
    sa.Enum(name="geofence_type").drop(op.get_bind(), checkfirst=True)
