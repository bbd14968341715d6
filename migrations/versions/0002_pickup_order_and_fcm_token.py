"""add route_assignments.pickup_order and users.fcm_token

Revision ID: 0002_pickup_order_fcm_token
Revises: 0001_initial_schema
Create Date: 2026-01-31 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_pickup_order_fcm_token"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table("route_assignments") as batch_op:
        batch_op.add_column(sa.Column("pickup_order", sa.Integer(), nullable=True))
        batch_op.create_index(
            "route_assignments_route_id_pickup_order_idx", ["route_id", "pickup_order"]
        )

    with op.batch_alter_table("users") as batch_op:
        batch_op.add_column(sa.Column("fcm_token", sa.Text(), nullable=True))


def downgrade():
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_column("fcm_token")

    with op.batch_alter_table("route_assignments") as batch_op:
        batch_op.drop_index("route_assignments_route_id_pickup_order_idx")
        batch_op.drop_column("pickup_order")
