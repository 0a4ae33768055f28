"""okta_factor: authentication factors enrolled by each user."""

from __future__ import annotations

from okta_tables.base_table import BaseTable
from okta_tables.errors import FACTOR_NOT_FOUND
from okta_tables.hydrate import Column, GetConfig, ListConfig, ParentConfig
from okta_tables.tables.common import USERS
from okta_tables.unions import UnionFamily, Variant

_PHONE = {"phone_number": "profile.phoneNumber"}
_CREDENTIAL = {"credential_id": "profile.credentialId"}

FACTORS = UnionFamily(
    name="factor",
    discriminant="factorType",
    variants=(
        Variant("call", _PHONE),
        Variant("email", {"email": "profile.email"}),
        Variant("push", {"device_type": "profile.deviceType"}),
        Variant("sms", _PHONE),
        Variant("question", {"question": "profile.question"}),
        Variant("token", _CREDENTIAL),
        Variant("token:hotp", _CREDENTIAL),
        Variant("token:hardware", _CREDENTIAL),
        Variant("token:software:totp", _CREDENTIAL),
        Variant("u2f", _CREDENTIAL),
        Variant("web", _CREDENTIAL),
        Variant("webauthn", _CREDENTIAL),
    ),
    common_fields={
        "factor_type": "factorType",
        "created": "created",
        "last_updated": "lastUpdated",
        "provider": "provider",
        "status": "status",
        "profile": "profile",
        "embedded": "_embedded",
        "verify": "verify",
        "title": "id",
    },
)


class FactorTable(BaseTable):
    TABLE_NAME = "okta_factor"
    DESCRIPTION = "Represents an Okta Factor."
    PARENT = ParentConfig(
        endpoint="/users",
        family=USERS,
        join_column="user_id",
        carry={"user_name": "login"},
    )
    # The factors endpoint returns every factor in one response.
    LIST = ListConfig(
        endpoint="/users/{user_id}/factors",
        family=FACTORS,
        page_size_param=None,
        errors=FACTOR_NOT_FOUND,
    )
    GET = GetConfig(
        endpoint="/users/{user_id}/factors",
        key_columns=("id", "user_id"),
        errors=FACTOR_NOT_FOUND,
    )

    def columns(self) -> list[Column]:
        return [
            # Top columns
            Column("id", "Unique key for the factor."),
            Column("user_id", "Unique key for the user."),
            Column("user_name", "Unique identifier for the user (username)."),
            Column("factor_type", "Type of the factor."),
            Column("created", "Timestamp when the factor was enrolled."),
            # Other columns
            Column("last_updated", "Timestamp when the factor was last updated."),
            Column("provider", "The provider for the factor."),
            Column("status", "The current status of the factor."),
            Column("phone_number", "Phone number of sms and call factors."),
            Column("email", "Email address of email factors."),
            Column("question", "Security question of question factors."),
            Column("device_type", "Device type of push factors."),
            Column("credential_id", "Credential identifier of token, u2f and webauthn factors."),
            # JSON columns
            Column("profile", "Specific attributes related to the factor."),
            Column("embedded", "Embedded resources related to the factor."),
            Column("verify", "Verification details of the factor."),
        ]
