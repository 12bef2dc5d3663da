"""Key generation, PEM serialization and serial number helpers."""

import uuid

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from .errors import ContractViolationError

RSA_KEY_SIZE = 2048


def generate_private_key(key_size: int = RSA_KEY_SIZE) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def serialize_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS1 "RSA PRIVATE KEY", no encryption).

    PKCS1 is what kube-apiserver and kubeadm write for *.key files.
    """
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def deserialize_private_key(pem_data: bytes) -> RSAPrivateKey:
    """Deserialize private key from PEM bytes.

    Raises:
        ContractViolationError: If the bytes are not a PEM encoded RSA key
    """
    try:
        key = serialization.load_pem_private_key(pem_data, password=None)
    except ValueError as e:
        raise ContractViolationError("MalformedCAMaterial", f"unable to decode key pem: {e}") from e
    if not isinstance(key, RSAPrivateKey):
        raise ContractViolationError("MalformedCAMaterial", "expected RSA private key")
    return key


def serialize_public_key(key: RSAPublicKey) -> bytes:
    """Serialize public key to PEM format (SubjectPublicKeyInfo)."""
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes.

    Raises:
        ContractViolationError: If the bytes are not a PEM encoded certificate
    """
    try:
        return x509.load_pem_x509_certificate(pem_data)
    except ValueError as e:
        raise ContractViolationError(
            "MalformedCAMaterial", f"unable to decode cert pem: {e}"
        ) from e


def generate_serial_number() -> int:
    """Generate certificate serial number from UUID4.

    Random 128-bit value, above the 64-bit CSPRNG minimum and always
    positive as X.509 requires.

    Returns:
        Integer serial number for x509.CertificateBuilder.serial_number()
    """
    return uuid.uuid4().int


def get_common_name(cert: x509.Certificate) -> str:
    """Return the subject CommonName of a certificate."""
    cn = cert.subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)[0].value
    if not isinstance(cn, str):
        raise ValueError("CN must be string")
    return cn


def is_issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    """Verify that `issuer` signed `cert`.

    Returns True if the signature checks out, False otherwise.
    """
    try:
        cert.verify_directly_issued_by(issuer)
        return True
    except (ValueError, TypeError, InvalidSignature):
        return False
