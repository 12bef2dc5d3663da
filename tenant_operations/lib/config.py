"""Certificate and controller configuration dataclasses."""

import ipaddress
import os
from dataclasses import dataclass, field
from datetime import datetime

from cryptography import x509
from cryptography.x509 import oid

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

DEFAULT_SECRET_NAMESPACE = "default"


@dataclass
class AltNames:
    """Subject alternative names for a certificate."""

    dns_names: list[str] = field(default_factory=list)
    ips: list[IPAddress] = field(default_factory=list)

    def deduplicated(self) -> "AltNames":
        """Return a copy with duplicate entries removed.

        DNS names are sorted so the signing input does not depend on the
        order callers listed them in. IPs keep first-seen order.
        """
        ips: list[IPAddress] = []
        for ip in self.ips:
            if ip not in ips:
                ips.append(ip)
        return AltNames(dns_names=sorted(set(self.dns_names)), ips=ips)

    def is_empty(self) -> bool:
        return not self.dns_names and not self.ips

    def to_x509(self) -> x509.SubjectAlternativeName:
        """Convert to a cryptography SubjectAlternativeName extension value."""
        entries: list[x509.GeneralName] = [x509.DNSName(name) for name in self.dns_names]
        entries.extend(x509.IPAddress(ip) for ip in self.ips)
        return x509.SubjectAlternativeName(entries)


@dataclass
class DistinguishedName:
    """X.509 Subject Distinguished Name (CN plus optional O entries)."""

    common_name: str
    organization: list[str] = field(default_factory=list)

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name for certificate generation."""
        attributes = [
            x509.NameAttribute(oid.NameOID.ORGANIZATION_NAME, org) for org in self.organization
        ]
        attributes.append(x509.NameAttribute(oid.NameOID.COMMON_NAME, self.common_name))
        return x509.Name(attributes)


@dataclass
class CertConfig:
    """Issuance parameters for a CA or leaf certificate."""

    common_name: str = ""
    organization: list[str] = field(default_factory=list)
    alt_names: AltNames = field(default_factory=AltNames)
    usages: list[x509.ObjectIdentifier] = field(default_factory=list)
    not_after: datetime | None = None

    def subject(self) -> DistinguishedName:
        return DistinguishedName(common_name=self.common_name, organization=list(self.organization))


@dataclass
class ControllerConfig:
    """Tenant controller configuration."""

    etcd_servers: list[str] = field(default_factory=list)
    etcd_secret_ref: str = ""
    apiserver_image: str = "registry.k8s.io/kube-apiserver:v1.23.4"
    controller_manager_image: str = "registry.k8s.io/kube-controller-manager:v1.23.4"
    service_cluster_ip_range: str = "10.101.0.0/16"
    cluster_cidr: str = "10.100.0.0/16"
    ready_requeue_seconds: int = 10
    key_size: int = 2048

    @classmethod
    def from_env(cls) -> "ControllerConfig":
        """Build configuration from environment variables.

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        servers = os.environ.get("ETCD_SERVERS", "")
        config = cls(
            etcd_servers=[s.strip() for s in servers.split(",") if s.strip()],
            etcd_secret_ref=os.environ.get("ETCD_SECRET", ""),
        )
        if image := os.environ.get("APISERVER_IMAGE"):
            config.apiserver_image = image
        if image := os.environ.get("CONTROLLER_MANAGER_IMAGE"):
            config.controller_manager_image = image

        problems = config.validate()
        if problems:
            raise ValueError("invalid controller configuration: " + "; ".join(problems))
        return config

    def validate(self) -> list[str]:
        """Return every configuration problem found (empty when valid)."""
        problems: list[str] = []
        if not self.etcd_servers:
            problems.append("etcd_servers must not be empty")
        if not self.etcd_secret_ref:
            problems.append("etcd_secret_ref must not be empty")
        else:
            try:
                parse_secret_ref(self.etcd_secret_ref)
            except ValueError as e:
                problems.append(str(e))
        if self.ready_requeue_seconds <= 0:
            problems.append("ready_requeue_seconds must be bigger than 0")
        return problems


def parse_secret_ref(ref: str) -> tuple[str, str]:
    """Split a `[namespace/]name` secret reference.

    Returns:
        Tuple of (namespace, name); namespace defaults to "default"
    """
    parts = ref.split("/")
    if len(parts) == 1:
        namespace, name = DEFAULT_SECRET_NAMESPACE, parts[0]
    elif len(parts) == 2:
        namespace, name = parts
    else:
        raise ValueError(f"invalid secret reference {ref!r}: use [namespace]/[name] or [name]")
    if not namespace or not name:
        raise ValueError(f"invalid secret reference {ref!r}: empty namespace or name")
    return namespace, name
