"""Initial schema: vehicles table with H3 and PostGIS spatial indexes.

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
    # Enable PostGIS extension (for the ST_DWithin radius search)
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("h3_cell", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("assigned_user_id", sa.String(128), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('Available', 'Rented', 'Maintenance', 'OutOfService')",
            name="ck_vehicles_status",
        ),
        sa.CheckConstraint(
            "(status = 'Rented') = (assigned_user_id IS NOT NULL)",
            name="ck_vehicles_assignment",
        ),
    )
    op.create_index("idx_vehicles_h3_cell", "vehicles", ["h3_cell"])
    op.create_index("idx_vehicles_latitude", "vehicles", ["latitude"])
    op.create_index("idx_vehicles_status", "vehicles", ["status"])
    op.create_index("idx_vehicles_assigned_user", "vehicles", ["assigned_user_id"])

    # Must match the expression built by PostGISVehicleRepository
    op.execute(
        "CREATE INDEX idx_vehicles_geog ON vehicles USING gist ("
        "CAST(ST_SetSRID(ST_MakePoint(longitude, latitude), 4326) "
        "AS geography(POINT,4326)))"
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_vehicles_geog")
    op.drop_index("idx_vehicles_assigned_user", table_name="vehicles")
    op.drop_index("idx_vehicles_status", table_name="vehicles")
    op.drop_index("idx_vehicles_latitude", table_name="vehicles")
    op.drop_index("idx_vehicles_h3_cell", table_name="vehicles")
    op.drop_table("vehicles")
