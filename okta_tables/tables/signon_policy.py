"""okta_signon_policy: global session (Okta sign-on) policies."""

from __future__ import annotations

from okta_tables.base_table import BaseTable
from okta_tables.hydrate import Column, ListConfig, ServerFilter
from okta_tables.tables.common import POLICIES, policy_columns


class SignonPolicyTable(BaseTable):
    TABLE_NAME = "okta_signon_policy"
    DESCRIPTION = "Okta sign-on policies control how users sign in and how long sessions last."
    LIST = ListConfig(
        endpoint="/policies",
        family=POLICIES,
        params={"type": "OKTA_SIGN_ON"},
        server_filters=(ServerFilter("status", "status"),),
    )

    def columns(self) -> list[Column]:
        return policy_columns(with_settings=False)
