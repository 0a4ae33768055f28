"""Variant families and column sets shared by several tables."""

from __future__ import annotations

from okta_tables.errors import POLICY_MAPPING_NOT_FOUND
from okta_tables.hydrate import Column, Hydrate
from okta_tables.unions import UnionFamily, Variant

USERS = UnionFamily(
    name="user",
    variants=(Variant("user"),),
    common_fields={
        "login": "profile.login",
        "email": "profile.email",
        "first_name": "profile.firstName",
        "last_name": "profile.lastName",
        "status": "status",
        "type_id": "type.id",
        "created": "created",
        "activated": "activated",
        "last_login": "lastLogin",
        "last_updated": "lastUpdated",
        "password_changed": "passwordChanged",
        "status_changed": "statusChanged",
        "transitioning_to_status": "transitioningToStatus",
        "profile": "profile",
        "title": "profile.login",
    },
)

_SIGN_ON = {"sign_on": "settings.signOn"}

APPLICATIONS = UnionFamily(
    name="application",
    discriminant="signOnMode",
    variants=(
        Variant("AUTO_LOGIN", _SIGN_ON),
        Variant("BASIC_AUTH", {"sign_on": "settings.app"}),
        Variant("BOOKMARK", {"sign_on": "settings.app"}),
        Variant("BROWSER_PLUGIN", {"sign_on": "settings.app"}),
        Variant("OPENID_CONNECT", {"sign_on": "settings.oauthClient", "oauth_client": "credentials.oauthClient"}),
        Variant("SAML_2_0", _SIGN_ON),
        Variant("SAML_1_1", _SIGN_ON),
        Variant("SECURE_PASSWORD_STORE", {"sign_on": "settings.app"}),
        Variant("WS_FEDERATION", {"sign_on": "settings.app"}),
    ),
    common_fields={
        "name": "name",
        "label": "label",
        "status": "status",
        "sign_on_mode": "signOnMode",
        "created": "created",
        "last_updated": "lastUpdated",
        "accessibility": "accessibility",
        "credentials": "credentials",
        "settings": "settings",
        "visibility": "visibility",
        "features": "features",
        "title": "label",
    },
)

_POLICY_COMMON = {
    "name": "name",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "system": "system",
    "type": "type",
    "created": "created",
    "last_updated": "lastUpdated",
    "conditions": "conditions",
    "title": "name",
}

_SETTINGS = {"settings": "settings"}

POLICIES = UnionFamily(
    name="policy",
    discriminant="type",
    variants=(
        Variant("PASSWORD", _SETTINGS),
        Variant("ACCESS_POLICY"),
        Variant("MFA_ENROLL", _SETTINGS),
        Variant("IDP_DISCOVERY"),
        Variant("OKTA_SIGN_ON"),
    ),
    common_fields=_POLICY_COMMON,
)

POLICY_RULES = UnionFamily(
    name="policy_rule",
    discriminant="type",
    variants=(
        Variant("PASSWORD"),
        Variant("ACCESS_POLICY"),
        Variant("MFA_ENROLL"),
        Variant("IDP_DISCOVERY"),
        Variant("SIGN_ON"),
    ),
    common_fields={
        "name": "name",
        "status": "status",
        "priority": "priority",
        "system": "system",
        "type": "type",
        "created": "created",
        "last_updated": "lastUpdated",
        "conditions": "conditions",
        "actions": "actions",
    },
)

POLICY_RULES_HYDRATE = Hydrate(
    name="policy_rules",
    endpoint="/policies/{id}/rules",
    family=POLICY_RULES,
)

POLICY_MAPPINGS_HYDRATE = Hydrate(
    name="policy_mappings",
    endpoint="/policies/{id}/mappings",
    errors=POLICY_MAPPING_NOT_FOUND,
)


def policy_columns(with_settings: bool) -> list[Column]:
    columns = [
        # Top columns
        Column("name", "Name of the Policy."),
        Column("id", "Identifier of the Policy."),
        Column("description", "Description of the Policy."),
        Column("created", "Timestamp when the Policy was created."),
        # Other columns
        Column("last_updated", "Timestamp when the Policy was last modified."),
        Column("priority", "Priority of the Policy."),
        Column("status", "Status of the Policy: ACTIVE or INACTIVE."),
        Column("system", "True for system policies, which cannot be deleted."),
        Column("type", "Type of the Policy."),
        # JSON columns
        Column("conditions", "Conditions for the Policy."),
        Column(
            "rules",
            "Rules of the Policy; each contains conditions that must be satisfied for it to apply.",
            hydrate=POLICY_RULES_HYDRATE,
        ),
        Column(
            "resource_mapping",
            "The resources that are mapped to the Policy.",
            hydrate=POLICY_MAPPINGS_HYDRATE,
        ),
    ]
    if with_settings:
        columns.append(Column("settings", "Settings of the Policy."))
    return columns
