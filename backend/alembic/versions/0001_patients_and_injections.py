"""patients and injections

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "patients",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("ref_id", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("indication", sa.String(length=100), nullable=False),
        sa.Column("medication", sa.String(length=100), nullable=True),
        sa.Column("swalis_classification", sa.String(length=50), nullable=True),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("remaining_od", sa.Integer(), nullable=False),
        sa.Column("remaining_os", sa.Integer(), nullable=False),
        sa.Column("start_od", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_patients_ref_id", "patients", ["ref_id"], unique=True)

    op.create_table(
        "injections",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("patient_id", sa.String(), sa.ForeignKey("patients.id"), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("od", sa.Integer(), nullable=False),
        sa.Column("os", sa.Integer(), nullable=False),
        sa.Column("done", sa.Boolean(), nullable=False),
        sa.Column("not_done", sa.Boolean(), nullable=False),
        sa.Column("treatment_type", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_injections_patient_id", "injections", ["patient_id"])
    op.create_index("ix_injections_date", "injections", ["date"])


def downgrade() -> None:
    op.drop_index("ix_injections_date", table_name="injections")
    op.drop_index("ix_injections_patient_id", table_name="injections")
    op.drop_table("injections")
    op.drop_index("ix_patients_ref_id", table_name="patients")
    op.drop_table("patients")
