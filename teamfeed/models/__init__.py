from teamfeed.models.collaborator import ProjectCollaborator
from teamfeed.models.invite import InviteStatus, ProjectInvite, TeamInvite
from teamfeed.models.project import Project, ProjectStatus
from teamfeed.models.team import Team, TeamMember
from teamfeed.models.update import Update, UpdateCategory, UpdateMood
from teamfeed.models.user import User

__all__ = [
    "InviteStatus",
    "Project",
    "ProjectCollaborator",
    "ProjectInvite",
    "ProjectStatus",
    "Team",
    "TeamInvite",
    "TeamMember",
    "Update",
    "UpdateCategory",
    "UpdateMood",
    "User",
]
