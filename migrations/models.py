"""
SQLAlchemy models for the serving store.

These models represent the database schema for Alembic migrations. The sync
pipeline writes to these tables with plain SQL through psycopg2.

"""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class SeedRun(Base):
    """Last successful run of a named sync job (e.g. daily-ingest)."""

    __tablename__ = "seed_runs"

    key = Column(Text, primary_key=True)
    last_ingested_at = Column(DateTime(timezone=True), nullable=False)


class Region(Base):
    """A regional chapter, projected from a warehouse org of type region."""

    __tablename__ = "regions"

    id = Column(Text, primary_key=True)
    slug = Column(Text, unique=True)
    name = Column(Text, nullable=False, unique=True)
    description = Column(Text)
    website = Column(Text)
    image = Column(Text)
    city = Column(Text)
    state = Column(Text)
    zip = Column(Text)
    country = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    zoom = Column(Integer)
    email = Column(Text)
    facebook = Column(Text)
    twitter = Column(Text)
    instagram = Column(Text)
    last_ingested_at = Column(DateTime(timezone=True))


class Workout(Base):
    """A recurring workout, projected from a warehouse event owned by an AO."""

    __tablename__ = "workouts"

    id = Column(Text, primary_key=True)
    region_id = Column(Text, ForeignKey("regions.id"), nullable=False)
    name = Column(Text, nullable=False)
    time = Column(Text, nullable=False)
    type = Column(Text, nullable=False)
    types = Column(ARRAY(Text))
    group = Column(Text, nullable=False)
    notes = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    city = Column(Text)
    state = Column(Text)
    zip = Column(Text)
    country = Column(Text)
    location = Column(Text)
    last_ingested_at = Column(DateTime(timezone=True))

    __table_args__ = (Index("workouts_region_id_idx", "region_id"),)
