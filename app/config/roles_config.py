"""
Group Roles Configuration
This config defines the group roles and which of them may perform each group-scoped action.
Used by the permission evaluator and by the /groups/{id}/role endpoint that drives UI gating.
"""

# Roles a group_members row may carry
GROUP_ROLES = {
    "admin": "Full control over the group, its members, tags and announcements",
    "contributor": "Can create and pin announcements",
    "member": "Can view announcements and vote on them",
}

# Role values found in legacy rows, mapped onto current roles
LEGACY_ROLE_ALIASES = {
    "moderator": "member",
}

SYSTEM_ADMIN_ROLE = "system_admin"

# Group-scoped actions and the roles allowed to perform them
GROUP_ACTIONS = {
    "announcements:create": {
        "roles": ["admin", "contributor"],
        "description": "Create announcements"
    },
    "announcements:pin": {
        "roles": ["admin", "contributor"],
        "description": "Pin or unpin announcements"
    },
    "announcements:archive": {
        "roles": ["admin"],
        "description": "Archive announcements"
    },
    "announcements:vote": {
        "roles": ["admin", "contributor", "member"],
        "description": "Upvote or downvote announcements"
    },
    "groups:update": {
        "roles": ["admin"],
        "description": "Rename or describe the group"
    },
    "groups:delete": {
        "roles": ["admin"],
        "description": "Delete the group"
    },
    "groups:manage_members": {
        "roles": ["admin"],
        "description": "Change member roles and remove members"
    },
    "tags:manage": {
        "roles": ["admin"],
        "description": "Create, rename and delete group tags"
    },
}


def allowed_roles(action: str) -> frozenset:
    """Roles allowed to perform a group action. Unknown actions allow nobody."""
    config = GROUP_ACTIONS.get(action)
    if config is None:
        return frozenset()
    return frozenset(config["roles"])


def get_role_matrix():
    """
    Returns the action matrix in a serialisable form
    Format: {
        "roles": [{"name": "admin", "description": "..."}, ...],
        "actions": [
            {"name": "announcements:create", "description": "...", "roles": ["admin", "contributor"]},
            ...
        ]
    }
    """
    roles = [
        {"name": name, "description": description}
        for name, description in GROUP_ROLES.items()
    ]
    actions = [
        {"name": name, "description": config["description"], "roles": sorted(config["roles"])}
        for name, config in GROUP_ACTIONS.items()
    ]
    return {
        "roles": roles,
        "actions": actions
    }


ADMIN_ROLES = allowed_roles("groups:manage_members")
ANNOUNCEMENT_AUTHOR_ROLES = allowed_roles("announcements:create")
