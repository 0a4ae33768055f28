"""okta_application: applications integrated with the Okta organisation."""

from __future__ import annotations

from okta_tables.base_table import BaseTable
from okta_tables.hydrate import Column, GetConfig, ListConfig, ServerFilter
from okta_tables.tables.common import APPLICATIONS


class ApplicationTable(BaseTable):
    TABLE_NAME = "okta_application"
    DESCRIPTION = "An application integrated with Okta, of any sign-on mode."
    LIST = ListConfig(
        endpoint="/apps",
        family=APPLICATIONS,
        server_filters=(ServerFilter("name", "filter", 'name eq "{value}"'),),
    )
    GET = GetConfig(endpoint="/apps", key_columns=("id",))

    def columns(self) -> list[Column]:
        return [
            Column("name", "Unique key for the application definition."),
            Column("id", "Unique key for the application."),
            Column("label", "User-defined display name for the application."),
            Column("created", "Timestamp when the application was created."),
            Column("status", "Current status of the application."),
            Column("sign_on_mode", "Authentication mode of the application."),
            Column("last_updated", "Timestamp when the application was last updated."),
            Column("accessibility", "Access settings for the application."),
            Column("credentials", "Credentials for the specified sign-on mode."),
            Column("features", "Enabled app features."),
            Column("settings", "Settings for the application."),
            Column("sign_on", "Sign-on settings specific to the application's sign-on mode."),
            Column("oauth_client", "OAuth client credentials (OpenID Connect applications only)."),
            Column("visibility", "Visibility settings for the application."),
        ]
