"""okta_app_assigned_user: users assigned to each application."""

from __future__ import annotations

from okta_tables.base_table import BaseTable
from okta_tables.hydrate import Column, GetConfig, ListConfig, ParentConfig, ServerFilter
from okta_tables.tables.common import APPLICATIONS
from okta_tables.unions import UnionFamily, Variant

APP_USERS = UnionFamily(
    name="app_user",
    variants=(Variant("app_user"),),
    common_fields={
        "user_name": "credentials.userName",
        "created": "created",
        "status": "status",
        "email": "profile.email",
        "external_id": "externalId",
        "first_name": "profile.given_name",
        "last_name": "profile.family_name",
        "last_sync": "lastSync",
        "last_updated": "lastUpdated",
        "password_changed": "passwordChanged",
        "scope": "scope",
        "status_changed": "statusChanged",
        "sync_state": "syncState",
        "links": "_links",
        "profile": "profile",
        "title": "id",
    },
)


class AppAssignedUserTable(BaseTable):
    TABLE_NAME = "okta_app_assigned_user"
    DESCRIPTION = "Represents all assigned users for applications."
    PARENT = ParentConfig(
        endpoint="/apps",
        family=APPLICATIONS,
        join_column="app_id",
        get_when_keyed=True,
    )
    LIST = ListConfig(
        endpoint="/apps/{app_id}/users",
        family=APP_USERS,
        # The API takes one free-text "q" prefix search; the first qualified
        # column wins. Rows are still post-filtered on every qualifier.
        server_filters=(
            ServerFilter("user_name", "q"),
            ServerFilter("first_name", "q"),
            ServerFilter("email", "q"),
        ),
        max_page_size=500,
    )
    GET = GetConfig(endpoint="/apps/{app_id}/users", key_columns=("id", "app_id"))

    def columns(self) -> list[Column]:
        return [
            # Top columns
            Column("id", "Unique key for the application user."),
            Column("user_name", "The username of the application user."),
            Column("app_id", "Unique key for the application."),
            Column("created", "Timestamp when the application user was created."),
            Column("status", "The status of the application user."),
            # Other columns
            Column("email", "The email of the application user."),
            Column("external_id", "The external ID of the application user."),
            Column("first_name", "The first name of the application user."),
            Column("last_name", "The last name of the application user."),
            Column("last_sync", "Timestamp when the application user was last synced."),
            Column("last_updated", "Timestamp when the application user was last updated."),
            Column("password_changed", "Timestamp when the password was last changed."),
            Column("scope", "The scope of the application user."),
            Column("status_changed", "Timestamp when the status last changed."),
            Column("sync_state", "The sync state of the application user."),
            # JSON columns
            Column("links", "The link details of the application user."),
            Column("profile", "The profile details of the application user."),
        ]
