from eleague.models.user import User, UserRole
from eleague.models.team import Team, TeamMember
from eleague.models.competition import (
    Competition,
    CompetitionType,
    CompetitionStatus,
    competition_teams,
)
from eleague.models.match import Match, MatchStage, MatchStatus, UNSCHEDULED
from eleague.models.result import (
    MatchResult,
    ResultStatus,
    MatchProof,
    MatchLineup,
    PlayerStat,
)
from eleague.models.request import CaptainRequest, TeamRequest, RequestStatus
from eleague.models.support import SupportTicket, TicketMessage, TicketStatus
from eleague.models.chat import ChatMessage, ChatReadStatus
from eleague.models.social import SocialPost

__all__ = [
    "User",
    "UserRole",
    "Team",
    "TeamMember",
    "Competition",
    "CompetitionType",
    "CompetitionStatus",
    "competition_teams",
    "Match",
    "MatchStage",
    "MatchStatus",
    "UNSCHEDULED",
    "MatchResult",
    "ResultStatus",
    "MatchProof",
    "MatchLineup",
    "PlayerStat",
    "CaptainRequest",
    "TeamRequest",
    "RequestStatus",
    "SupportTicket",
    "TicketMessage",
    "TicketStatus",
    "ChatMessage",
    "ChatReadStatus",
    "SocialPost",
]
