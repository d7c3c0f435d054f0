from pickup.models.tables import (
    CaptainVote,
    Community,
    CommunityMember,
    Game,
    GameCaptain,
    GameDraftEvent,
    GameNotification,
    GameQueue,
    GameResult,
    GameTeam,
    GameTeamMember,
    Profile,
    PushDeviceToken,
)

__all__ = [
    "CaptainVote",
    "Community",
    "CommunityMember",
    "Game",
    "GameCaptain",
    "GameDraftEvent",
    "GameNotification",
    "GameQueue",
    "GameResult",
    "GameTeam",
    "GameTeamMember",
    "Profile",
    "PushDeviceToken",
]
