"""Certificate builder for X.509 certificate construction."""

from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from .cert_utils import generate_serial_number
from .config import AltNames, DistinguishedName

CA_BACKDATE = timedelta(minutes=5)
DEFAULT_VALIDITY_YEARS = 10


def _validity(years: int) -> timedelta:
    return timedelta(days=years * 365)


class CertificateBuilder:
    """Builds self-signed CA certificates and CA-signed leaf certificates."""

    @staticmethod
    def build_ca(
        subject_dn: DistinguishedName,
        private_key: RSAPrivateKey,
        alt_names: AltNames | None = None,
        validity_years: int = DEFAULT_VALIDITY_YEARS,
    ) -> x509.Certificate:
        """Build self-signed CA certificate.

        NotBefore is backdated five minutes to tolerate clock skew between
        the issuing controller and the nodes running the control plane.

        Args:
            subject_dn: Distinguished name for subject and issuer
            private_key: RSA private key for signing
            alt_names: Optional subject alternative names
            validity_years: Certificate validity period in years

        Returns:
            Self-signed X.509 certificate with CA extensions
        """
        subject = subject_dn.to_x509_name()
        now = datetime.now(timezone.utc)
        not_before = now - CA_BACKDATE
        not_after = now + _validity(validity_years)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(private_key.public_key())
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=0),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
                critical=False,
            )
        )

        if alt_names is not None and not alt_names.is_empty():
            builder = builder.add_extension(alt_names.deduplicated().to_x509(), critical=False)

        return builder.sign(private_key, hashes.SHA256())

    @staticmethod
    def build_signed(
        subject_dn: DistinguishedName,
        public_key: RSAPublicKey,
        issuer_cert: x509.Certificate,
        issuer_key: RSAPrivateKey,
        usages: list[x509.ObjectIdentifier],
        alt_names: AltNames | None = None,
        not_after: datetime | None = None,
    ) -> x509.Certificate:
        """Build a non-CA certificate signed by the given CA.

        NotBefore is pinned to the CA's own NotBefore so the leaf is never
        valid earlier than its issuer.

        Args:
            subject_dn: Distinguished name for certificate subject
            public_key: Public key to certify
            issuer_cert: CA certificate (issuer)
            issuer_key: CA private key for signing
            usages: Extended key usages, at least one
            alt_names: Optional subject alternative names
            not_after: Expiry override, defaults to ten years from now; never
                later than the CA's own NotAfter

        Returns:
            X.509 end-entity certificate signed by the CA
        """
        if not_after is None:
            not_after = datetime.now(timezone.utc) + _validity(DEFAULT_VALIDITY_YEARS)
        not_after = min(not_after, issuer_cert.not_valid_after_utc)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject_dn.to_x509_name())
            .issuer_name(issuer_cert.subject)
            .public_key(public_key)
            .serial_number(generate_serial_number())
            .not_valid_before(issuer_cert.not_valid_before_utc)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(x509.ExtendedKeyUsage(usages), critical=False)
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_key.public_key()),
                critical=False,
            )
        )

        if alt_names is not None and not alt_names.is_empty():
            builder = builder.add_extension(alt_names.deduplicated().to_x509(), critical=False)

        return builder.sign(issuer_key, hashes.SHA256())
