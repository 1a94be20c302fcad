"""Closed role vocabularies and the operation gating table.

Every "is this role at least X" question in the API goes through
:func:`role_at_least` / :func:`can_perform`; routes never compare role
strings themselves.
"""

from __future__ import annotations

import enum


class ProjectRole(str, enum.Enum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        return _PROJECT_RANK[self]


_PROJECT_RANK = {
    ProjectRole.VIEWER: 1,
    ProjectRole.EDITOR: 2,
    ProjectRole.OWNER: 3,
}


class TeamRole(str, enum.Enum):
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        return _TEAM_RANK[self]

    def to_project_role(self) -> ProjectRole:
        """Project-facing equivalent of a team role (admin/member write, viewer reads)."""
        if self is TeamRole.VIEWER:
            return ProjectRole.VIEWER
        return ProjectRole.EDITOR


_TEAM_RANK = {
    TeamRole.VIEWER: 1,
    TeamRole.MEMBER: 2,
    TeamRole.ADMIN: 3,
}


class AccessLevel(str, enum.Enum):
    """Floor grant used by ``globalProjectAccess`` and ``allUsersAccess``."""

    VIEW = "view"
    EDIT = "edit"
    NONE = "none"

    def floor_role(self) -> ProjectRole | None:
        if self is AccessLevel.EDIT:
            return ProjectRole.EDITOR
        if self is AccessLevel.VIEW:
            return ProjectRole.VIEWER
        return None


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    COLLABORATORS = "collaborators"


class Operation(str, enum.Enum):
    VIEW = "view"
    POST_UPDATE = "post_update"
    EDIT_CONTENT = "edit_content"
    INVITE = "invite"
    MANAGE_SHARE = "manage_share"
    MANAGE_COLLABORATORS = "manage_collaborators"
    CHANGE_ACCESS = "change_access"
    DELETE_PROJECT = "delete_project"


# Minimum project role per operation.
OPERATION_MIN_ROLE: dict[Operation, ProjectRole] = {
    Operation.VIEW: ProjectRole.VIEWER,
    Operation.POST_UPDATE: ProjectRole.EDITOR,
    Operation.EDIT_CONTENT: ProjectRole.EDITOR,
    Operation.INVITE: ProjectRole.EDITOR,
    Operation.MANAGE_SHARE: ProjectRole.EDITOR,
    Operation.MANAGE_COLLABORATORS: ProjectRole.OWNER,
    Operation.CHANGE_ACCESS: ProjectRole.OWNER,
    Operation.DELETE_PROJECT: ProjectRole.OWNER,
}


def role_at_least(role: ProjectRole | None, minimum: ProjectRole) -> bool:
    return role is not None and role.rank >= minimum.rank


def higher_role(a: ProjectRole | None, b: ProjectRole | None) -> ProjectRole | None:
    """Return the stronger of two roles; ``None`` only when both are ``None``."""
    if a is None:
        return b
    if b is None:
        return a
    return a if a.rank >= b.rank else b


def can_perform(operation: Operation, role: ProjectRole | None) -> bool:
    return role_at_least(role, OPERATION_MIN_ROLE[operation])


def can_remove_collaborator(role: ProjectRole | None, actor_id: int, target_id: int) -> bool:
    """Owners remove anyone; everyone may remove themselves."""
    return actor_id == target_id or can_perform(Operation.MANAGE_COLLABORATORS, role)


def team_role_at_least(role: TeamRole | None, minimum: TeamRole) -> bool:
    return role is not None and role.rank >= minimum.rank
