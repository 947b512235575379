"""Initial custody schema: asset pools, custody ledgers, folio claims, directory, change events

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None


ASSET_TABLES = ("assets_inea", "assets_itea", "assets_no_listado")


def _create_asset_table(name):
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_code", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("condition", sa.String(8), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("value_cents", sa.Integer(), nullable=True),
        sa.Column("acquired_on", sa.Date(), nullable=True),
        sa.Column("acquisition_method", sa.String(64), nullable=True),
        sa.Column("invoice", sa.String(64), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("municipality", sa.String(128), nullable=True),
        sa.Column("area", sa.String(255), nullable=True),
        sa.Column("custodian", sa.String(255), nullable=True),
        sa.Column("holder", sa.String(255), nullable=True),
        sa.Column("decommissioned_on", sa.Date(), nullable=True),
        sa.Column("decommission_cause", sa.String(255), nullable=True),
        sa.Column("image_path", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table(name, schema=None) as batch_op:
        batch_op.create_index(f"ix_{name}_inventory_code", ["inventory_code"], unique=False)
        batch_op.create_index(f"ix_{name}_status", ["status"], unique=False)
        batch_op.create_index(f"ix_{name}_area", ["area"], unique=False)
        batch_op.create_index(f"ix_{name}_custodian", ["custodian"], unique=False)


def upgrade():
    for name in ASSET_TABLES:
        _create_asset_table(name)

    op.create_table(
        "custody_ledger",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("folio", sa.String(32), nullable=False),
        sa.Column("assigned_on", sa.Date(), nullable=False),
        sa.Column("area", sa.String(255), nullable=False),
        sa.Column("custodian", sa.String(255), nullable=False),
        sa.Column("position", sa.String(255), nullable=True),
        sa.Column("inventory_code", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("condition", sa.String(8), nullable=True),
        sa.Column("origin", sa.String(16), nullable=False),
        sa.Column("asset_id", sa.Integer(), nullable=True),
        sa.Column("holder", sa.String(255), nullable=True),
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("custody_ledger", schema=None) as batch_op:
        batch_op.create_index("ix_custody_ledger_folio", ["folio"], unique=False)
        batch_op.create_index("ix_custody_ledger_assigned_on", ["assigned_on"], unique=False)
        batch_op.create_index("ix_custody_ledger_custodian", ["custodian"], unique=False)
        batch_op.create_index("ix_custody_ledger_inventory_code", ["inventory_code"], unique=False)
        batch_op.create_index("ix_custody_ledger_folio_code", ["folio", "inventory_code"], unique=False)

    op.create_table(
        "decommission_ledger",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("custody_folio", sa.String(32), nullable=False),
        sa.Column("decommission_folio", sa.String(32), nullable=False),
        sa.Column("assigned_on", sa.Date(), nullable=True),
        sa.Column("area", sa.String(255), nullable=True),
        sa.Column("custodian", sa.String(255), nullable=True),
        sa.Column("position", sa.String(255), nullable=True),
        sa.Column("inventory_code", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("condition", sa.String(8), nullable=True),
        sa.Column("origin", sa.String(16), nullable=True),
        sa.Column("holder", sa.String(255), nullable=True),
        sa.Column("actor", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("decommission_ledger", schema=None) as batch_op:
        batch_op.create_index("ix_decommission_ledger_custody_folio", ["custody_folio"], unique=False)
        batch_op.create_index("ix_decommission_ledger_decommission_folio", ["decommission_folio"], unique=False)
        batch_op.create_index("ix_decommission_ledger_inventory_code", ["inventory_code"], unique=False)
        batch_op.create_index("ix_decommission_ledger_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_decommission_ledger_created", ["created_at", "id"], unique=False)

    op.create_table(
        "folio_claims",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("folio_type", sa.String(16), nullable=False),
        sa.Column("period", sa.String(8), nullable=False),
        sa.Column("folio", sa.String(32), nullable=False),
        sa.Column("claimed_by", sa.String(255), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("folio", name="uq_folio_claims_folio"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("folio_claims", schema=None) as batch_op:
        batch_op.create_index("ix_folio_claims_type_period", ["folio_type", "period"], unique=False)

    op.create_table(
        "areas",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "directors",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("legacy_area", sa.String(255), nullable=True),
        sa.Column("legacy_position", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("directors", schema=None) as batch_op:
        batch_op.create_index("ix_directors_name", ["name"], unique=False)

    op.create_table(
        "director_areas",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("director_id", sa.Integer(), nullable=False),
        sa.Column("area_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["director_id"], ["directors.id"]),
        sa.ForeignKeyConstraint(["area_id"], ["areas.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("director_id", "area_id", name="uq_director_areas_director_area"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("director_areas", schema=None) as batch_op:
        batch_op.create_index("ix_director_areas_director_id", ["director_id"], unique=False)
        batch_op.create_index("ix_director_areas_area_id", ["area_id"], unique=False)

    op.create_table(
        "change_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("affected_tables", sa.JSON(), nullable=False),
        sa.Column("changes", sa.JSON(), nullable=False),
        sa.Column("actor", sa.String(255), nullable=True),
        sa.Column("importance", sa.String(16), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("change_events", schema=None) as batch_op:
        batch_op.create_index("ix_change_events_event_type", ["event_type"], unique=False)
        batch_op.create_index("ix_change_events_occurred", ["occurred_at", "id"], unique=False)


def downgrade():
    op.drop_table("change_events")
    op.drop_table("director_areas")
    op.drop_table("directors")
    op.drop_table("areas")
    op.drop_table("folio_claims")
    op.drop_table("decommission_ledger")
    op.drop_table("custody_ledger")
    for name in reversed(ASSET_TABLES):
        op.drop_table(name)
