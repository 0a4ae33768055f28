"""okta_mfa_policy: authenticator enrollment policies."""

from __future__ import annotations

from okta_tables.base_table import BaseTable
from okta_tables.hydrate import Column, ListConfig, ServerFilter
from okta_tables.tables.common import POLICIES, policy_columns


class MfaPolicyTable(BaseTable):
    TABLE_NAME = "okta_mfa_policy"
    DESCRIPTION = "Authenticator enrollment policies that control which factors users enroll."
    LIST = ListConfig(
        endpoint="/policies",
        family=POLICIES,
        params={"type": "MFA_ENROLL"},
        server_filters=(ServerFilter("status", "status"),),
    )

    def columns(self) -> list[Column]:
        return policy_columns(with_settings=True)
