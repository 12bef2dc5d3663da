"""Service-account bearer tokens signed with a tenant's sa.key."""

import base64
import hashlib
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

DEFAULT_ISSUER = "https://kubernetes.default.svc.cluster.local"
DEFAULT_TTL = timedelta(hours=1)


def key_id(public_key: RSAPublicKey) -> str:
    """Key ID as kube-apiserver derives it: base64url(sha256(DER SPKI))."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return base64.urlsafe_b64encode(hashlib.sha256(der).digest()).rstrip(b"=").decode("ascii")


def service_account_subject(namespace: str, name: str) -> str:
    return f"system:serviceaccount:{namespace}:{name}"


def issue_service_account_token(
    sa_key: RSAPrivateKey,
    namespace: str,
    name: str,
    audiences: list[str],
    issuer: str = DEFAULT_ISSUER,
    ttl: timedelta = DEFAULT_TTL,
) -> str:
    """Mint an RS256 bound service-account token.

    Args:
        sa_key: Service-account signing key (sa.key)
        namespace: Service account namespace inside the tenant control plane
        name: Service account name
        audiences: Token audiences
        issuer: Must match the apiserver's --service-account-issuer
        ttl: Token lifetime

    Returns:
        Encoded JWT
    """
    if not audiences:
        raise ValueError("must specify at least one audience")

    now = datetime.now(UTC)
    claims: dict[str, Any] = {
        "iss": issuer,
        "sub": service_account_subject(namespace, name),
        "aud": audiences,
        "iat": now,
        "nbf": now,
        "exp": now + ttl,
        "kubernetes.io": {"namespace": namespace, "serviceaccount": {"name": name}},
    }
    return jwt.encode(
        claims, sa_key, algorithm="RS256", headers={"kid": key_id(sa_key.public_key())}
    )


def verify_service_account_token(
    token: str,
    sa_pub: RSAPublicKey,
    audience: str,
    issuer: str = DEFAULT_ISSUER,
) -> dict[str, Any] | None:
    """Validate a token against sa.pub and return its claims if valid."""
    try:
        return jwt.decode(
            token,
            sa_pub,
            algorithms=["RS256"],
            audience=audience,
            issuer=issuer,
        )
    except jwt.exceptions.PyJWTError:
        return None
