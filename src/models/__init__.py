from src.models.credit import (
    CreditReferenceType,
    CreditTransaction,
    CreditTransactionCreate,
    CreditTransactionRead,
    CreditTransactionType,
)
from src.models.draft import DraftSubmission, ProposalDraft
from src.models.interest import (
    InterestCreate,
    InterestLevel,
    InterestListEntry,
    InterestRead,
    PublicVisibility,
    TripInterest,
)
from src.models.trip import (
    ProposalStatus,
    SourceType,
    Trip,
    TripCreate,
    TripRead,
    TripTeaser,
    ViabilityRule,
)
from src.models.user import UserProfile, UserProfileRead
from src.models.viability import ProposalStats, ViabilityResult
from src.models.vote import TripVote, VoteRead

__all__ = [
    "Trip",
    "TripCreate",
    "TripRead",
    "TripTeaser",
    "ProposalStatus",
    "SourceType",
    "ViabilityRule",
    "TripVote",
    "VoteRead",
    "TripInterest",
    "InterestCreate",
    "InterestLevel",
    "InterestListEntry",
    "InterestRead",
    "PublicVisibility",
    "CreditTransaction",
    "CreditTransactionCreate",
    "CreditTransactionRead",
    "CreditTransactionType",
    "CreditReferenceType",
    "UserProfile",
    "UserProfileRead",
    "ProposalDraft",
    "DraftSubmission",
    "ProposalStats",
    "ViabilityResult",
]
