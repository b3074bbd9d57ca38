"""initial draw settlement schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-02-01 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
MONEY = sa.Numeric(12, 2)


def upgrade() -> None:
    op.create_table(
        "charities",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_charities")),
    )

    op.create_table(
        "draws",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("month_year", sa.String(length=32), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "open",
                "processing",
                "published",
                name="drawstatus",
                native_enum=False,
                length=20,
            ),
            nullable=False,
        ),
        sa.Column("score_range_min", sa.Integer(), nullable=True),
        sa.Column("score_range_max", sa.Integer(), nullable=True),
        sa.Column("winning_numbers", sa.JSON(), nullable=False),
        sa.Column("participants_count", sa.Integer(), nullable=False),
        sa.Column("prize_pool", MONEY, nullable=False),
        sa.Column("tier1_pool", MONEY, nullable=False),
        sa.Column("tier2_pool", MONEY, nullable=False),
        sa.Column("tier3_pool", MONEY, nullable=False),
        sa.Column("tier1_winners", sa.Integer(), nullable=False),
        sa.Column("tier2_winners", sa.Integer(), nullable=False),
        sa.Column("tier3_winners", sa.Integer(), nullable=False),
        sa.Column("tier2_overflow", MONEY, nullable=False),
        sa.Column("jackpot_cap_reached", sa.Boolean(), nullable=False),
        sa.Column("jackpot_carryover_in", MONEY, nullable=True),
        sa.Column("jackpot_rollover_out", MONEY, nullable=True),
        sa.Column("drawn_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draws")),
        sa.UniqueConstraint("month_year", name="uq_draws_month_year"),
    )
    op.create_index("ix_draws_status", "draws", ["status"], unique=False)

    op.create_table(
        "participants",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("charity_id", ID, nullable=True),
        sa.Column("donation_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('active','suspended')",
            name=op.f("ck_participants_status_enum"),
        ),
        sa.CheckConstraint(
            "role IN ('player','admin')", name=op.f("ck_participants_role_enum")
        ),
        sa.CheckConstraint(
            "donation_percentage >= 0 AND donation_percentage <= 100",
            name=op.f("ck_participants_donation_percentage_range"),
        ),
        sa.ForeignKeyConstraint(
            ["charity_id"],
            ["charities.id"],
            name=op.f("fk_participants_charity_id_charities"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_participants")),
        sa.UniqueConstraint("email", name=op.f("uq_participants_email")),
    )

    op.create_table(
        "scores",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("participant_id", ID, nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("played_on", sa.Date(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participants.id"],
            name=op.f("fk_scores_participant_id_participants"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_scores")),
    )
    op.create_index(
        op.f("ix_scores_participant_id"), "scores", ["participant_id"], unique=False
    )
    op.create_index(
        "ix_scores_participant_created",
        "scores",
        ["participant_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("participant_id", ID, nullable=False),
        sa.Column("plan", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("assigned_draw_id", ID, nullable=True),
        sa.Column("draws_remaining", sa.Integer(), nullable=False),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "plan IN ('monthly','annual')", name=op.f("ck_subscriptions_plan_enum")
        ),
        sa.CheckConstraint(
            "status IN ('active','trialing','past_due','cancelled','expired')",
            name=op.f("ck_subscriptions_status_enum"),
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participants.id"],
            name=op.f("fk_subscriptions_participant_id_participants"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["assigned_draw_id"],
            ["draws.id"],
            name=op.f("fk_subscriptions_assigned_draw_id_draws"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_subscriptions")),
    )
    op.create_index(
        op.f("ix_subscriptions_participant_id"),
        "subscriptions",
        ["participant_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_subscriptions_assigned_draw_id"),
        "subscriptions",
        ["assigned_draw_id"],
        unique=False,
    )

    op.create_table(
        "draw_entries",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("draw_id", ID, nullable=False),
        sa.Column("participant_id", ID, nullable=True),
        sa.Column("scores", sa.JSON(), nullable=False),
        sa.Column("matches", sa.Integer(), nullable=False),
        sa.Column("tier", sa.Integer(), nullable=False),
        sa.Column("gross_prize", MONEY, nullable=False),
        sa.Column("charity_amount", MONEY, nullable=False),
        sa.Column("net_payout", MONEY, nullable=False),
        sa.Column("charity_id", ID, nullable=True),
        sa.Column("verification_status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["draw_id"],
            ["draws.id"],
            name=op.f("fk_draw_entries_draw_id_draws"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participants.id"],
            name=op.f("fk_draw_entries_participant_id_participants"),
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["charity_id"],
            ["charities.id"],
            name=op.f("fk_draw_entries_charity_id_charities"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draw_entries")),
        sa.UniqueConstraint(
            "draw_id", "participant_id", name="uq_draw_entry_participant"
        ),
    )
    op.create_index(
        op.f("ix_draw_entries_draw_id"), "draw_entries", ["draw_id"], unique=False
    )
    op.create_index(
        op.f("ix_draw_entries_participant_id"),
        "draw_entries",
        ["participant_id"],
        unique=False,
    )
    op.create_index("ix_draw_entries_tier", "draw_entries", ["tier"], unique=False)

    op.create_table(
        "donations",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("charity_id", ID, nullable=True),
        sa.Column("participant_id", ID, nullable=True),
        sa.Column("draw_id", ID, nullable=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["charity_id"],
            ["charities.id"],
            name=op.f("fk_donations_charity_id_charities"),
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participants.id"],
            name=op.f("fk_donations_participant_id_participants"),
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["draw_id"],
            ["draws.id"],
            name=op.f("fk_donations_draw_id_draws"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_donations")),
    )
    op.create_index(
        op.f("ix_donations_draw_id"), "donations", ["draw_id"], unique=False
    )

    op.create_table(
        "jackpot_tracker",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("last_draw_id", ID, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["last_draw_id"],
            ["draws.id"],
            name=op.f("fk_jackpot_tracker_last_draw_id_draws"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_jackpot_tracker")),
    )

    op.create_table(
        "draw_settings",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("base_amount_per_sub", MONEY, nullable=False),
        sa.Column("tier1_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("tier2_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("tier3_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("jackpot_cap", MONEY, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "ABS(tier1_percent + tier2_percent + tier3_percent - 100) < 0.001",
            name=op.f("ck_draw_settings_tier_percent_sum"),
        ),
        sa.CheckConstraint(
            "base_amount_per_sub >= 0",
            name=op.f("ck_draw_settings_base_amount_non_negative"),
        ),
        sa.CheckConstraint(
            "jackpot_cap >= 0", name=op.f("ck_draw_settings_jackpot_cap_non_negative")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draw_settings")),
    )

    op.create_table(
        "activity_log",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("resource_type", sa.String(length=50), nullable=True),
        sa.Column("resource_id", sa.Integer(), nullable=True),
        sa.Column("extra", sa.JSON(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_activity_log")),
    )
    op.create_index(
        "ix_activity_log_action", "activity_log", ["action"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_activity_log_action", table_name="activity_log")
    op.drop_table("activity_log")
    op.drop_table("draw_settings")
    op.drop_table("jackpot_tracker")
    op.drop_index(op.f("ix_donations_draw_id"), table_name="donations")
    op.drop_table("donations")
    op.drop_index("ix_draw_entries_tier", table_name="draw_entries")
    op.drop_index(op.f("ix_draw_entries_participant_id"), table_name="draw_entries")
    op.drop_index(op.f("ix_draw_entries_draw_id"), table_name="draw_entries")
    op.drop_table("draw_entries")
    op.drop_index(
        op.f("ix_subscriptions_assigned_draw_id"), table_name="subscriptions"
    )
    op.drop_index(op.f("ix_subscriptions_participant_id"), table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index("ix_scores_participant_created", table_name="scores")
    op.drop_index(op.f("ix_scores_participant_id"), table_name="scores")
    op.drop_table("scores")
    op.drop_table("participants")
    op.drop_index("ix_draws_status", table_name="draws")
    op.drop_table("draws")
    op.drop_table("charities")
