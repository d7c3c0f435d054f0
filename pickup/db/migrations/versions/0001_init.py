"""init pickup roster and draft tables

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="member"),
        _created_at(),
    )

    op.create_table(
        "communities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False, server_default="UTC"),
        sa.Column(
            "confirmation_window_hours_before_kickoff",
            sa.Integer(),
            nullable=False,
            server_default="24",
        ),
        sa.Column(
            "crunch_time_enabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("crunch_time_start_time_local", sa.String(length=5), nullable=True),
        sa.Column("confirmation_reminder_time_local", sa.String(length=5), nullable=True),
        _created_at(),
    )

    op.create_table(
        "community_members",
        sa.Column("community_id", sa.Integer(), sa.ForeignKey("communities.id"), primary_key=True),
        sa.Column("profile_id", sa.Integer(), sa.ForeignKey("profiles.id"), primary_key=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="approved"),
        _created_at("joined_at"),
    )

    op.create_table(
        "games",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("community_id", sa.Integer(), sa.ForeignKey("communities.id"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("waitlist_capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "confirmation_enabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column("join_cutoff_offset_minutes_from_kickoff", sa.Integer(), nullable=True),
        sa.Column("confirmation_window_hours_before_kickoff", sa.Integer(), nullable=True),
        sa.Column("draft_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("draft_turn", sa.Integer(), nullable=True),
        sa.Column("draft_direction", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("crunch_time_notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmation_reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.CheckConstraint("capacity > 0", name="ck_games_capacity_positive"),
        sa.CheckConstraint("draft_direction IN (1, -1)", name="ck_games_draft_direction"),
    )
    op.create_index("ix_games_community_id", "games", ["community_id"], unique=False)

    op.create_table(
        "game_queue",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=False),
        sa.Column("profile_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("added_by_profile_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("guest_name", sa.String(length=120), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("promoted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attendance_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("game_id", "profile_id", name="uq_game_queue_game_profile"),
    )
    op.create_index("ix_game_queue_game_id", "game_queue", ["game_id"], unique=False)
    op.create_index(
        "ix_game_queue_game_status_joined",
        "game_queue",
        ["game_id", "status", "joined_at", "id"],
        unique=False,
    )

    op.create_table(
        "game_captains",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=False),
        sa.Column("slot", sa.Integer(), nullable=False),
        sa.Column("profile_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("team_name", sa.String(length=60), nullable=True),
        sa.UniqueConstraint("game_id", "slot", name="uq_game_captains_game_slot"),
        sa.UniqueConstraint("game_id", "profile_id", name="uq_game_captains_game_profile"),
    )
    op.create_index("ix_game_captains_game_id", "game_captains", ["game_id"], unique=False)

    op.create_table(
        "game_captain_votes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=False),
        sa.Column("voter_profile_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("candidate_profile_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=False),
        _created_at(),
        sa.UniqueConstraint(
            "game_id",
            "voter_profile_id",
            "candidate_profile_id",
            name="uq_game_captain_votes_vote",
        ),
    )
    op.create_index("ix_game_captain_votes_game_id", "game_captain_votes", ["game_id"], unique=False)

    op.create_table(
        "game_teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=False),
        sa.Column("name", sa.String(length=60), nullable=False),
        sa.Column("draft_order", sa.Integer(), nullable=False),
        sa.Column("captain_profile_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.UniqueConstraint("game_id", "draft_order", name="uq_game_teams_game_order"),
    )
    op.create_index("ix_game_teams_game_id", "game_teams", ["game_id"], unique=False)

    op.create_table(
        "game_team_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=False),
        sa.Column("game_team_id", sa.Integer(), sa.ForeignKey("game_teams.id"), nullable=False),
        sa.Column("profile_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("guest_queue_id", sa.Integer(), sa.ForeignKey("game_queue.id"), nullable=True),
        sa.Column("pick_order", sa.Integer(), nullable=False),
        sa.Column("assigned_by", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        _created_at("assigned_at"),
        sa.UniqueConstraint("game_id", "profile_id", name="uq_game_team_members_game_profile"),
        sa.UniqueConstraint("game_id", "guest_queue_id", name="uq_game_team_members_game_guest"),
    )
    op.create_index("ix_game_team_members_game_id", "game_team_members", ["game_id"], unique=False)
    op.create_index(
        "ix_game_team_members_game_team_id", "game_team_members", ["game_team_id"], unique=False
    )

    op.create_table(
        "game_draft_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column(
            "team_id",
            sa.Integer(),
            sa.ForeignKey("game_teams.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("profile_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("guest_queue_id", sa.Integer(), sa.ForeignKey("game_queue.id"), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("is_undone", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_game_draft_events_game_action_created",
        "game_draft_events",
        ["game_id", "action", "created_at"],
        unique=False,
    )

    op.create_table(
        "game_results",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=False, unique=True),
        sa.Column("winning_team_id", sa.Integer(), sa.ForeignKey("game_teams.id"), nullable=False),
        sa.Column("losing_team_id", sa.Integer(), sa.ForeignKey("game_teams.id"), nullable=True),
        sa.Column("winner_score", sa.Integer(), nullable=True),
        sa.Column("loser_score", sa.Integer(), nullable=True),
        sa.Column("reported_by", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("reported_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
    )

    op.create_table(
        "push_device_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("profile_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("platform", sa.String(length=20), nullable=False),
        sa.Column("device_id", sa.String(length=191), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("app_version", sa.String(length=40), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        _created_at("updated_at"),
        sa.UniqueConstraint("profile_id", "device_id", name="uq_push_device_tokens_profile_device"),
    )
    op.create_index(
        "ix_push_device_tokens_profile_id", "push_device_tokens", ["profile_id"], unique=False
    )

    op.create_table(
        "game_notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=False),
        sa.Column(
            "device_token_id",
            sa.Integer(),
            sa.ForeignKey("push_device_tokens.id"),
            nullable=False,
        ),
        sa.Column("kind", sa.String(length=40), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_game_notifications_game_id", "game_notifications", ["game_id"], unique=False)
    op.create_index(
        "ix_game_notifications_device_token_id",
        "game_notifications",
        ["device_token_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_game_notifications_device_token_id", table_name="game_notifications")
    op.drop_index("ix_game_notifications_game_id", table_name="game_notifications")
    op.drop_table("game_notifications")
    op.drop_index("ix_push_device_tokens_profile_id", table_name="push_device_tokens")
    op.drop_table("push_device_tokens")
    op.drop_table("game_results")
    op.drop_index("ix_game_draft_events_game_action_created", table_name="game_draft_events")
    op.drop_table("game_draft_events")
    op.drop_index("ix_game_team_members_game_team_id", table_name="game_team_members")
    op.drop_index("ix_game_team_members_game_id", table_name="game_team_members")
    op.drop_table("game_team_members")
    op.drop_index("ix_game_teams_game_id", table_name="game_teams")
    op.drop_table("game_teams")
    op.drop_index("ix_game_captain_votes_game_id", table_name="game_captain_votes")
    op.drop_table("game_captain_votes")
    op.drop_index("ix_game_captains_game_id", table_name="game_captains")
    op.drop_table("game_captains")
    op.drop_index("ix_game_queue_game_status_joined", table_name="game_queue")
    op.drop_index("ix_game_queue_game_id", table_name="game_queue")
    op.drop_table("game_queue")
    op.drop_index("ix_games_community_id", table_name="games")
    op.drop_table("games")
    op.drop_table("community_members")
    op.drop_table("communities")
    op.drop_table("profiles")
