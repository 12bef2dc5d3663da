"""PKI engine: CA, leaf certificate and service-account key issuance.

Pure functions with no I/O. Every call generates fresh key material.
"""

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from .cert_utils import RSA_KEY_SIZE, generate_private_key
from .certificate_builder import DEFAULT_VALIDITY_YEARS, CertificateBuilder
from .config import CertConfig
from .errors import ContractViolationError


def _require_common_name(config: CertConfig) -> None:
    if not config.common_name:
        raise ContractViolationError("MissingCommonName", "must specify a CommonName")


def new_ca(
    config: CertConfig,
    key_size: int = RSA_KEY_SIZE,
    validity_years: int = DEFAULT_VALIDITY_YEARS,
) -> tuple[x509.Certificate, RSAPrivateKey]:
    """Create a self-signed certificate authority.

    Args:
        config: Trust domain identity (CN, O) and optional alt names
        key_size: RSA key size
        validity_years: CA lifetime; CAs are not rotated by this controller

    Returns:
        Tuple of (ca_cert, ca_key)

    Raises:
        ContractViolationError: If no CommonName is set
    """
    _require_common_name(config)
    key = generate_private_key(key_size)
    cert = CertificateBuilder.build_ca(
        subject_dn=config.subject(),
        private_key=key,
        alt_names=config.alt_names,
        validity_years=validity_years,
    )
    return cert, key


def new_cert_and_key(
    ca_cert: x509.Certificate,
    ca_key: RSAPrivateKey,
    config: CertConfig,
    key_size: int = RSA_KEY_SIZE,
) -> tuple[x509.Certificate, RSAPrivateKey]:
    """Create a leaf certificate and key signed by the given CA.

    The contract is checked before any key is generated.

    Raises:
        ContractViolationError: If usages are empty or no CommonName is set
    """
    if not config.usages:
        raise ContractViolationError("MissingExtKeyUsage", "must specify at least one ExtKeyUsage")
    _require_common_name(config)

    key = generate_private_key(key_size)
    cert = CertificateBuilder.build_signed(
        subject_dn=config.subject(),
        public_key=key.public_key(),
        issuer_cert=ca_cert,
        issuer_key=ca_key,
        usages=config.usages,
        alt_names=config.alt_names.deduplicated(),
        not_after=config.not_after,
    )
    return cert, key


def new_pub_and_key(key_size: int = RSA_KEY_SIZE) -> tuple[RSAPublicKey, RSAPrivateKey]:
    """Generate the service-account token signing key pair (no certificate)."""
    key = generate_private_key(key_size)
    return key.public_key(), key
