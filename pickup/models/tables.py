from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from pickup.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    role = Column(String(20), nullable=False, server_default="member", default="member")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role in {"admin", "owner"}


class Community(Base):
    __tablename__ = "communities"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    timezone = Column(String(64), nullable=False, server_default="UTC", default="UTC")
    confirmation_window_hours_before_kickoff = Column(Integer, nullable=False, server_default="24", default=24)
    crunch_time_enabled = Column(Boolean, nullable=False, server_default="false", default=False)
    crunch_time_start_time_local = Column(String(5), nullable=True)
    confirmation_reminder_time_local = Column(String(5), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class CommunityMember(Base):
    __tablename__ = "community_members"

    community_id = Column(Integer, ForeignKey("communities.id"), primary_key=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), primary_key=True)
    status = Column(String(20), nullable=False, server_default="approved", default="approved")
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Game(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True)
    community_id = Column(Integer, ForeignKey("communities.id"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, server_default="scheduled", default="scheduled")
    capacity = Column(Integer, nullable=False)
    waitlist_capacity = Column(Integer, nullable=False, server_default="0", default=0)
    confirmation_enabled = Column(Boolean, nullable=False, server_default="true", default=True)
    join_cutoff_offset_minutes_from_kickoff = Column(Integer, nullable=True)
    confirmation_window_hours_before_kickoff = Column(Integer, nullable=True)
    draft_status = Column(String(20), nullable=False, server_default="pending", default="pending")
    draft_turn = Column(Integer, nullable=True)
    draft_direction = Column(Integer, nullable=False, server_default="1", default=1)
    crunch_time_notified_at = Column(DateTime(timezone=True), nullable=True)
    confirmation_reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class GameQueue(Base):
    __tablename__ = "game_queue"

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    added_by_profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    guest_name = Column(String(120), nullable=True)
    status = Column(String(20), nullable=False)
    joined_at = Column(DateTime(timezone=True), nullable=False)
    promoted_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    attendance_confirmed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (UniqueConstraint("game_id", "profile_id"),)

    @property
    def is_guest(self) -> bool:
        return self.profile_id is None


class GameCaptain(Base):
    __tablename__ = "game_captains"

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    slot = Column(Integer, nullable=False)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    team_name = Column(String(60), nullable=True)

    __table_args__ = (
        UniqueConstraint("game_id", "slot"),
        UniqueConstraint("game_id", "profile_id"),
    )


class CaptainVote(Base):
    __tablename__ = "game_captain_votes"

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    voter_profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    candidate_profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (UniqueConstraint("game_id", "voter_profile_id", "candidate_profile_id"),)


class GameTeam(Base):
    __tablename__ = "game_teams"

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    name = Column(String(60), nullable=False)
    draft_order = Column(Integer, nullable=False)
    captain_profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)

    __table_args__ = (UniqueConstraint("game_id", "draft_order"),)


class GameTeamMember(Base):
    __tablename__ = "game_team_members"

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    game_team_id = Column(Integer, ForeignKey("game_teams.id"), nullable=False, index=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    guest_queue_id = Column(Integer, ForeignKey("game_queue.id"), nullable=True)
    pick_order = Column(Integer, nullable=False)
    assigned_by = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("game_id", "profile_id"),
        UniqueConstraint("game_id", "guest_queue_id"),
    )


class GameDraftEvent(Base):
    __tablename__ = "game_draft_events"

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    action = Column(String(20), nullable=False)
    team_id = Column(Integer, ForeignKey("game_teams.id", ondelete="SET NULL"), nullable=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    guest_queue_id = Column(Integer, ForeignKey("game_queue.id"), nullable=True)
    created_by = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    payload = Column(JSON, nullable=False, default=dict)
    is_undone = Column(Boolean, nullable=False, server_default="false", default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class GameResult(Base):
    __tablename__ = "game_results"

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, unique=True)
    winning_team_id = Column(Integer, ForeignKey("game_teams.id"), nullable=False)
    losing_team_id = Column(Integer, ForeignKey("game_teams.id"), nullable=True)
    winner_score = Column(Integer, nullable=True)
    loser_score = Column(Integer, nullable=True)
    reported_by = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    reported_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, server_default="pending", default="pending")


class PushDeviceToken(Base):
    __tablename__ = "push_device_tokens"

    id = Column(Integer, primary_key=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    platform = Column(String(20), nullable=False)
    device_id = Column(String(191), nullable=False)
    token = Column(Text, nullable=False)
    timezone = Column(String(64), nullable=True)
    app_version = Column(String(40), nullable=True)
    is_active = Column(Boolean, nullable=False, server_default="true", default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (UniqueConstraint("profile_id", "device_id"),)


class GameNotification(Base):
    __tablename__ = "game_notifications"

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    device_token_id = Column(
        Integer, ForeignKey("push_device_tokens.id"), nullable=False, index=True
    )
    kind = Column(String(40), nullable=False)
    status = Column(String(20), nullable=False, server_default="pending", default="pending")
    error = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
