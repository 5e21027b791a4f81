from eleague.schemas.competition import (
    CompetitionSchema,
    CreateCompetitionSchema,
    UpdateCompetitionSchema,
    SetupBracketSchema,
    ResolveTieSchema,
)
from eleague.schemas.team import (
    TeamSchema,
    TeamMemberSchema,
    UpdateTeamSchema,
    AddMemberSchema,
    CaptainRequestSchema,
    TeamRequestSchema,
    CreateTeamRequestSchema,
    ResolveRequestSchema,
)
from eleague.schemas.user import (
    UserSchema,
    RegisterSchema,
    UpdateProfileSchema,
    SetRoleSchema,
    SetBannedSchema,
)
from eleague.schemas.match import (
    MatchSchema,
    MatchResultSchema,
    MatchProofSchema,
    MatchLineupSchema,
    PlayerStatSchema,
    CreateMatchSchema,
    UpdateMatchSchema,
    SubmitResultSchema,
    ApproveResultSchema,
    RejectResultSchema,
    GenerateFixturesSchema,
    GenerateGroupsSchema,
)
from eleague.schemas.messaging import (
    SupportTicketSchema,
    TicketMessageSchema,
    ChatMessageSchema,
    PostMessageSchema,
)
from eleague.schemas.social import (
    SocialPostSchema,
    CreateSocialPostSchema,
    UpdateSocialPostSchema,
)

__all__ = [
    "CompetitionSchema",
    "CreateCompetitionSchema",
    "UpdateCompetitionSchema",
    "SetupBracketSchema",
    "ResolveTieSchema",
    "TeamSchema",
    "TeamMemberSchema",
    "UpdateTeamSchema",
    "AddMemberSchema",
    "CaptainRequestSchema",
    "TeamRequestSchema",
    "CreateTeamRequestSchema",
    "ResolveRequestSchema",
    "UserSchema",
    "RegisterSchema",
    "UpdateProfileSchema",
    "SetRoleSchema",
    "SetBannedSchema",
    "MatchSchema",
    "MatchResultSchema",
    "MatchProofSchema",
    "MatchLineupSchema",
    "PlayerStatSchema",
    "CreateMatchSchema",
    "UpdateMatchSchema",
    "SubmitResultSchema",
    "ApproveResultSchema",
    "RejectResultSchema",
    "GenerateFixturesSchema",
    "GenerateGroupsSchema",
    "SupportTicketSchema",
    "TicketMessageSchema",
    "ChatMessageSchema",
    "PostMessageSchema",
    "SocialPostSchema",
    "CreateSocialPostSchema",
    "UpdateSocialPostSchema",
]
