import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("ENV_FILE", "/dev/null")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("PUSH_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pickup.db.base import Base
from pickup.models import Community, CommunityMember, Game, GameQueue, Profile

KICKOFF = datetime(2026, 1, 10, 18, 0, tzinfo=timezone.utc)
IN_WINDOW = KICKOFF - timedelta(hours=2)
BEFORE_WINDOW = KICKOFF - timedelta(hours=30)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    with TestingSession() as session:
        yield session


class Factory:
    def __init__(self, db):
        self.db = db
        self._clock = BEFORE_WINDOW - timedelta(hours=48)

    def _tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    def profile(self, name: str, role: str = "member") -> Profile:
        profile = Profile(name=name, role=role)
        self.db.add(profile)
        self.db.commit()
        return profile

    def community(self, **kwargs) -> Community:
        kwargs.setdefault("name", "Thursday Footy")
        community = Community(**kwargs)
        self.db.add(community)
        self.db.commit()
        return community

    def member(self, community: Community, profile: Profile, status: str = "approved") -> None:
        self.db.add(
            CommunityMember(community_id=community.id, profile_id=profile.id, status=status)
        )
        self.db.commit()

    def members(self, community: Community, *names: str) -> list[Profile]:
        profiles = []
        for name in names:
            profile = self.profile(name)
            self.member(community, profile)
            profiles.append(profile)
        return profiles

    def game(self, community: Community, **kwargs) -> Game:
        kwargs.setdefault("name", "Thursday 6pm")
        kwargs.setdefault("start_time", KICKOFF)
        kwargs.setdefault("capacity", 4)
        kwargs.setdefault("waitlist_capacity", 2)
        kwargs.setdefault("join_cutoff_offset_minutes_from_kickoff", 0)
        game = Game(community_id=community.id, **kwargs)
        self.db.add(game)
        self.db.commit()
        return game

    def entry(
        self,
        game: Game,
        profile: Profile | None,
        status: str = "rostered",
        confirmed: bool = False,
        guest_name: str | None = None,
    ) -> GameQueue:
        joined_at = self._tick()
        entry = GameQueue(
            game_id=game.id,
            profile_id=profile.id if profile else None,
            guest_name=guest_name,
            status=status,
            joined_at=joined_at,
            attendance_confirmed_at=IN_WINDOW - timedelta(hours=1) if confirmed else None,
        )
        self.db.add(entry)
        self.db.commit()
        return entry

    def confirmed_roster(self, game: Game, profiles: list[Profile]) -> list[GameQueue]:
        return [self.entry(game, profile, confirmed=True) for profile in profiles]


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def community(factory):
    return factory.community()


@pytest.fixture
def admin(factory, community):
    profile = factory.profile("Organizer", role="admin")
    factory.member(community, profile)
    return profile
