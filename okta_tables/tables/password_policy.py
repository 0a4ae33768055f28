"""okta_password_policy: password length, complexity and recovery policies."""

from __future__ import annotations

from okta_tables.base_table import BaseTable
from okta_tables.hydrate import Column, ListConfig, ServerFilter
from okta_tables.tables.common import POLICIES, policy_columns


class PasswordPolicyTable(BaseTable):
    TABLE_NAME = "okta_password_policy"
    DESCRIPTION = (
        "The Password Policy determines the requirements for a user's password "
        "length and complexity, and the recovery operations a user may perform."
    )
    LIST = ListConfig(
        endpoint="/policies",
        family=POLICIES,
        params={"type": "PASSWORD"},
        server_filters=(ServerFilter("status", "status"),),
    )

    def columns(self) -> list[Column]:
        return policy_columns(with_settings=True)
