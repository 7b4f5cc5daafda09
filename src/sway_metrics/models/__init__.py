"""ORM model registry — import all models so metadata sees every table."""

from sway_metrics.models.election import BallotItem, Election, Jurisdiction, Office, OfficeTerm, Race
from sway_metrics.models.profile import Person, Profile
from sway_metrics.models.viewpoint_group import MembershipType, ProfileViewpointGroupRel, ViewpointGroup
from sway_metrics.models.voter_verification import VoterVerification, VoterVerificationJurisdictionRel

__all__ = [
    "BallotItem",
    "Election",
    "Jurisdiction",
    "MembershipType",
    "Office",
    "OfficeTerm",
    "Person",
    "Profile",
    "ProfileViewpointGroupRel",
    "Race",
    "ViewpointGroup",
    "VoterVerification",
    "VoterVerificationJurisdictionRel",
]
