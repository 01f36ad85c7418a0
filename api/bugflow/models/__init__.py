from bugflow.models.access_token import AccessToken
from bugflow.models.bug import Bug
from bugflow.models.invitation import Invitation
from bugflow.models.project import Project
from bugflow.models.team import Team, TeamMember
from bugflow.models.time_entry import TimeEntry
from bugflow.models.todo import Todo
from bugflow.models.user import AppUser

__all__ = [
    "AccessToken",
    "AppUser",
    "Bug",
    "Invitation",
    "Project",
    "Team",
    "TeamMember",
    "TimeEntry",
    "Todo",
]
