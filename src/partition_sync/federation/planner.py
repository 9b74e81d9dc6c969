"""Planning of the trust material a secondary partition needs.

A secondary partition never gets administrative access to the primary. It
receives copies of only those secrets it cannot work without:

- the CA certificate, always, to verify the servers;
- the CA key, when auto-encrypt is off and its clients must sign their own
  certificates;
- the partition bootstrap token, when ACLs are managed, together with the
  address of its own API server so it can set up its auth method.

The planner only decides; copying is done by the SecretRelocator.
"""

from __future__ import annotations

from partition_sync.models import (
    SecurityMode,
    TrustMaterialItem,
    TrustMaterialKind,
    TrustPlan,
)

PRIMARY_PARTITION = "default"
SECONDARY_PARTITION = "secondary"

CA_CERT_KEY = "tls.crt"
CA_KEY_KEY = "tls.key"
BOOTSTRAP_TOKEN_KEY = "token"


def ca_cert_secret_name(release_name: str) -> str:
    return f"{release_name}-consul-ca-cert"


def ca_key_secret_name(release_name: str) -> str:
    return f"{release_name}-consul-ca-key"


def partition_token_secret_name(release_name: str) -> str:
    return f"{release_name}-consul-partitions-acl-token"


def plan(
    security: SecurityMode,
    release_name: str,
    auth_method_host: str,
    origin: str = PRIMARY_PARTITION,
    destination: str = SECONDARY_PARTITION,
) -> TrustPlan:
    """Compute the secrets to relocate and the Helm values that reference them.

    Args:
        security: ACL and auto-encrypt settings of the case.
        release_name: Helm release name of the primary installation, which
            prefixes every generated secret name.
        auth_method_host: API server URL of the secondary cluster. Only
            used when ACLs are enabled.
        origin: Name of the primary partition.
        destination: Name of the secondary partition.

    Returns:
        The plan. Helm values hold secret name/key references, never the
        secret values themselves.
    """
    items: list[TrustMaterialItem] = []
    values: dict[str, str] = {}

    def add(kind: TrustMaterialKind, secret_name: str, secret_key: str) -> None:
        items.append(
            TrustMaterialItem(
                kind=kind,
                secret_name=secret_name,
                secret_key=secret_key,
                origin=origin,
                destination=destination,
            )
        )

    ca_cert = ca_cert_secret_name(release_name)
    add(TrustMaterialKind.CA_CERT, ca_cert, CA_CERT_KEY)
    values["global.tls.caCert.secretName"] = ca_cert
    values["global.tls.caCert.secretKey"] = CA_CERT_KEY

    if not security.auto_encrypt_enabled:
        ca_key = ca_key_secret_name(release_name)
        add(TrustMaterialKind.CA_KEY, ca_key, CA_KEY_KEY)
        values["global.tls.caKey.secretName"] = ca_key
        values["global.tls.caKey.secretKey"] = CA_KEY_KEY

    if security.acls_enabled:
        token = partition_token_secret_name(release_name)
        add(TrustMaterialKind.BOOTSTRAP_TOKEN, token, BOOTSTRAP_TOKEN_KEY)
        values["global.acls.bootstrapToken.secretName"] = token
        values["global.acls.bootstrapToken.secretKey"] = BOOTSTRAP_TOKEN_KEY
        values["externalServers.k8sAuthMethodHost"] = auth_method_host

    return TrustPlan(items=tuple(items), helm_values=values)
