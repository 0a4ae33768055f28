"""Secret reference resolution for the API token.

A value prefixed with a known scheme is fetched from the matching cloud
secret manager; any other value is returned untouched.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Callable

logger = logging.getLogger("okta_tables.secrets")

_AWS_PREFIX = "aws-secret://"
_GCP_PREFIX = "gcp-secret://"


def resolve_secret(value: str) -> str:
    """Resolve "aws-secret://name[#key]", "gcp-secret://name|projects/..." or a literal."""
    for prefix, resolver in _RESOLVERS.items():
        if value.startswith(prefix):
            ref = value[len(prefix):]
            logger.info("Resolving secret reference %s%s", prefix, ref.split("#", 1)[0])
            return resolver(ref)
    return value


def _from_aws(ref: str) -> str:
    import boto3

    secret_name, _, json_key = ref.partition("#")
    client = boto3.client(
        "secretsmanager", region_name=os.environ.get("AWS_REGION", "us-east-1")
    )
    secret_string = client.get_secret_value(SecretId=secret_name)["SecretString"]
    if json_key:
        return str(json.loads(secret_string)[json_key])
    return secret_string


def _from_gcp(ref: str) -> str:
    from google.cloud import secretmanager

    if ref.startswith("projects/"):
        name = ref
    else:
        project = os.environ.get("GCP_PROJECT_ID", "")
        if not project:
            raise RuntimeError(
                f"Cannot resolve gcp-secret://{ref} without GCP_PROJECT_ID"
            )
        name = f"projects/{project}/secrets/{ref}/versions/latest"

    client = secretmanager.SecretManagerServiceClient()
    response = client.access_secret_version(request={"name": name})
    return response.payload.data.decode("UTF-8")


_RESOLVERS: dict[str, Callable[[str], str]] = {
    _AWS_PREFIX: _from_aws,
    _GCP_PREFIX: _from_gcp,
}
