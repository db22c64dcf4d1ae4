"""Initial schema: trips, votes, interest and user profiles.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-09-28 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("short_description", sa.Text(), nullable=False),
        sa.Column("long_description", sa.Text(), nullable=True),
        sa.Column("price", sa.String(length=50), nullable=True),
        sa.Column("duration", sa.String(length=50), nullable=True),
        sa.Column("destination", sa.Text(), nullable=False),
        sa.Column("hero_image", sa.Text(), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("tags", postgresql.JSONB(), nullable=True),
        sa.Column("source_type", sa.String(length=20), nullable=False, server_default="ntg"),
        sa.Column("created_by_user_id", sa.String(), nullable=True),
        sa.Column("proposal_status", sa.String(length=30), nullable=True),
        sa.Column("viability_rule", postgresql.JSONB(), nullable=True),
        sa.Column("price_essential_min", sa.Integer(), nullable=True),
        sa.Column("price_essential_max", sa.Integer(), nullable=True),
        sa.Column("price_complete_min", sa.Integer(), nullable=True),
        sa.Column("price_complete_max", sa.Integer(), nullable=True),
        sa.Column("destinations", postgresql.JSONB(), nullable=True),
        sa.Column("difficulty", sa.String(length=20), nullable=True),
        sa.Column("start_city", sa.String(length=100), nullable=True, server_default="Coimbra"),
        sa.Column("includes", postgresql.JSONB(), nullable=True),
        sa.Column("excludes", postgresql.JSONB(), nullable=True),
        sa.Column("optional_addons", postgresql.JSONB(), nullable=True),
        sa.Column("itinerary_essential", postgresql.JSONB(), nullable=True),
        sa.Column("itinerary_complete", postgresql.JSONB(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True, server_default="10"),
        sa.Column("duration_hours_est", sa.Integer(), nullable=True),
        sa.Column("cover_image_prompt", sa.Text(), nullable=True),
        sa.Column("status_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("creator_reward_cents", sa.Integer(), nullable=False, server_default="2000"),
        sa.Column("reward_paid_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_trips_slug", "trips", ["slug"], unique=True)
    op.create_index("ix_trips_created_by_user_id", "trips", ["created_by_user_id"], unique=False)
    op.create_index("ix_trips_proposal_status", "trips", ["proposal_status"], unique=False)

    op.create_table(
        "trip_votes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("trip_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["trip_id"], ["trips.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "trip_id", name="uq_trip_votes_user_trip"),
    )
    op.create_index("ix_trip_votes_user_id", "trip_votes", ["user_id"], unique=False)
    op.create_index("ix_trip_votes_trip_id", "trip_votes", ["trip_id"], unique=False)

    op.create_table(
        "trip_favorites",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("trip_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("interest_level", sa.String(length=20), nullable=False, server_default="interested"),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("public_visibility", sa.String(length=20), nullable=False, server_default="anonymous"),
        sa.ForeignKeyConstraint(["trip_id"], ["trips.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "trip_id", name="uq_trip_favorites_user_trip"),
    )
    op.create_index("ix_trip_favorites_user_id", "trip_favorites", ["user_id"], unique=False)
    op.create_index("ix_trip_favorites_trip_id", "trip_favorites", ["trip_id"], unique=False)

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=True),
        sa.Column("travel_credit_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_user_profiles_user_id", "user_profiles", ["user_id"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_user_profiles_user_id", table_name="user_profiles")
    op.drop_table("user_profiles")

    op.drop_index("ix_trip_favorites_trip_id", table_name="trip_favorites")
    op.drop_index("ix_trip_favorites_user_id", table_name="trip_favorites")
    op.drop_table("trip_favorites")

    op.drop_index("ix_trip_votes_trip_id", table_name="trip_votes")
    op.drop_index("ix_trip_votes_user_id", table_name="trip_votes")
    op.drop_table("trip_votes")

    op.drop_index("ix_trips_proposal_status", table_name="trips")
    op.drop_index("ix_trips_created_by_user_id", table_name="trips")
    op.drop_index("ix_trips_slug", table_name="trips")
    op.drop_table("trips")
