"""okta_user: users of the Okta organisation, with their group memberships."""

from __future__ import annotations

from okta_tables.base_table import BaseTable
from okta_tables.hydrate import Column, GetConfig, Hydrate, ListConfig, ServerFilter
from okta_tables.tables.common import USERS
from okta_tables.unions import UnionFamily, Variant

GROUPS = UnionFamily(
    name="group",
    variants=(Variant("group"),),
    common_fields={"name": "profile.name", "type": "type"},
)

USER_GROUPS_HYDRATE = Hydrate(
    name="user_groups",
    endpoint="/users/{id}/groups",
    family=GROUPS,
)


class UserTable(BaseTable):
    TABLE_NAME = "okta_user"
    DESCRIPTION = "An Okta user account."
    LIST = ListConfig(
        endpoint="/users",
        family=USERS,
        server_filters=(
            ServerFilter("status", "filter", 'status eq "{value}"'),
            ServerFilter("login", "search", 'profile.login eq "{value}"'),
        ),
    )
    GET = GetConfig(endpoint="/users", key_columns=("id",))

    def columns(self) -> list[Column]:
        return [
            # Top columns
            Column("login", "Unique identifier for the user (username)."),
            Column("id", "Unique key for the user."),
            Column("email", "Primary email address of the user."),
            Column("created", "Timestamp when the user was created."),
            Column("status", "Current status of the user."),
            # Other columns
            Column("first_name", "Given name of the user."),
            Column("last_name", "Family name of the user."),
            Column("type_id", "Identifier of the user type."),
            Column("activated", "Timestamp when the user was activated."),
            Column("last_login", "Timestamp of the user's last login."),
            Column("last_updated", "Timestamp when the user was last updated."),
            Column("password_changed", "Timestamp when the password was last changed."),
            Column("status_changed", "Timestamp when the status last changed."),
            Column("transitioning_to_status", "Target status of an in-progress asynchronous status transition."),
            # JSON columns
            Column("profile", "The user's profile properties."),
            Column("user_groups", "Groups the user is a member of.", hydrate=USER_GROUPS_HYDRATE),
        ]
