"""Initial serving-store schema: regions, workouts, seed_runs

Revision ID: 001_initial
Revises:
Create Date: 2025-06-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.dialects.postgresql import ARRAY
from dotenv import load_dotenv
from pathlib import Path
import os

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _schema() -> str:
    env_path = Path(__file__).resolve().parent.parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)
    return os.getenv("PG_SCHEMA")


def _table_exists(table_name: str, schema: str = None) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    if schema:
        return table_name in inspector.get_table_names(schema=schema)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    schema = _schema()

    if not _table_exists("seed_runs", schema):
        op.create_table(
            "seed_runs",
            sa.Column("key", sa.Text(), nullable=False),
            sa.Column("last_ingested_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("key"),
            schema=schema,
        )

    if not _table_exists("regions", schema):
        op.create_table(
            "regions",
            sa.Column("id", sa.Text(), nullable=False),
            sa.Column("slug", sa.Text(), nullable=True),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("website", sa.Text(), nullable=True),
            sa.Column("image", sa.Text(), nullable=True),
            sa.Column("city", sa.Text(), nullable=True),
            sa.Column("state", sa.Text(), nullable=True),
            sa.Column("zip", sa.Text(), nullable=True),
            sa.Column("country", sa.Text(), nullable=True),
            sa.Column("latitude", sa.Float(), nullable=True),
            sa.Column("longitude", sa.Float(), nullable=True),
            sa.Column("zoom", sa.Integer(), nullable=True),
            sa.Column("email", sa.Text(), nullable=True),
            sa.Column("facebook", sa.Text(), nullable=True),
            sa.Column("twitter", sa.Text(), nullable=True),
            sa.Column("instagram", sa.Text(), nullable=True),
            sa.Column("last_ingested_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("slug", name="regions_slug_key"),
            sa.UniqueConstraint("name", name="regions_name_key"),
            schema=schema,
        )

    if not _table_exists("workouts", schema):
        regions_ref = f"{schema}.regions.id" if schema else "regions.id"
        op.create_table(
            "workouts",
            sa.Column("id", sa.Text(), nullable=False),
            sa.Column("region_id", sa.Text(), nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("time", sa.Text(), nullable=False),
            sa.Column("type", sa.Text(), nullable=False),
            sa.Column("types", ARRAY(sa.Text()), nullable=True),
            sa.Column("group", sa.Text(), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("latitude", sa.Float(), nullable=True),
            sa.Column("longitude", sa.Float(), nullable=True),
            sa.Column("city", sa.Text(), nullable=True),
            sa.Column("state", sa.Text(), nullable=True),
            sa.Column("zip", sa.Text(), nullable=True),
            sa.Column("country", sa.Text(), nullable=True),
            sa.Column("location", sa.Text(), nullable=True),
            sa.Column("last_ingested_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["region_id"], [regions_ref], name="workouts_region_id_fkey"),
            schema=schema,
        )
        op.create_index(
            "workouts_region_id_idx", "workouts", ["region_id"], schema=schema
        )


def downgrade() -> None:
    schema = _schema()

    if _table_exists("workouts", schema):
        op.drop_index("workouts_region_id_idx", table_name="workouts", schema=schema)
        op.drop_table("workouts", schema=schema)
    if _table_exists("regions", schema):
        op.drop_table("regions", schema=schema)
    if _table_exists("seed_runs", schema):
        op.drop_table("seed_runs", schema=schema)
