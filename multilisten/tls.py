"""
TLS material: loading it from the paths in the config, and turning it into a server SSL context.

Python's ssl bindings do not allow loading certificates/keys from memory
(see https://bugs.python.org/issue16487), so the material goes through temporary files.
The private key is written there encrypted with an ephemeral password.
"""

import os
import ssl
from ipaddress import ip_address
from typing import TypeAlias, cast, get_args

import arrow
from attrs import field, frozen
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes
from cryptography.hazmat.primitives.serialization import load_pem_private_key, pkcs12
from cryptography.x509.oid import NameOID

from .config import HTTPSConfig, MaterialShape
from .errors import CertificateLoadError, ConfigurationError
from .filesystem import BaseFileSystem
from .utils import temp_file


@frozen
class PfxMaterial:
    pfx: bytes = field(repr=False)
    passphrase: str = field(default="", repr=False)


@frozen
class KeyCertCaMaterial:
    key: bytes = field(repr=False)
    cert: bytes
    ca: bytes


TLSMaterial: TypeAlias = PfxMaterial | KeyCertCaMaterial


def load_tls_material(https_config: HTTPSConfig, filesystem: BaseFileSystem) -> TLSMaterial:
    """
    Reads the certificate files named in the config.
    If a PFX is given, it is used exclusively, even if key/cert/ca are also present.
    """

    def read(path: str) -> bytes:
        try:
            return filesystem.read_bytes(path)
        except OSError as exc:
            raise CertificateLoadError(f"Cannot read {path}: {exc.strerror or exc}") from exc

    shape = https_config.material_shape()

    if shape == MaterialShape.PFX:
        assert https_config.pfx is not None  # noqa: S101
        return PfxMaterial(pfx=read(https_config.pfx), passphrase=https_config.passphrase or "")

    if shape == MaterialShape.KEY_CERT_CA:
        # Guaranteed by `material_shape()`, but mypy can't see it.
        assert https_config.key is not None  # noqa: S101
        assert https_config.cert is not None  # noqa: S101
        assert https_config.ca is not None  # noqa: S101
        return KeyCertCaMaterial(
            key=read(https_config.key),
            cert=read(https_config.cert),
            ca=read(https_config.ca),
        )

    raise ConfigurationError(
        'HTTPS requires either "https.pfx" or all of "https.key", "https.cert" and "https.ca"'
    )


class SSLPrivateKey:
    @classmethod
    def generate(cls) -> "SSLPrivateKey":
        return cls(ec.generate_private_key(ec.SECP384R1()))

    def __init__(self, private_key: CertificateIssuerPrivateKeyTypes):
        self.certificate_private_key = private_key

    @classmethod
    def from_pem_bytes(cls, data: bytes, password: bytes | None = None) -> "SSLPrivateKey":
        private_key = load_pem_private_key(data, password=password)
        return cls._checked(private_key)

    @classmethod
    def _checked(cls, private_key: object) -> "SSLPrivateKey":
        # Not everything that can be deserialized as a private key
        # can serve as a certificate private key.
        key_types = get_args(CertificateIssuerPrivateKeyTypes)
        if not isinstance(private_key, key_types):
            raise TypeError(
                f"`SSLPrivateKey` can only be deserialized from {key_types}, "
                f"got {type(private_key)}"
            )
        # mypy can't understand it, but we just checked it above
        return cls(cast("CertificateIssuerPrivateKeyTypes", private_key))

    def to_pem_bytes(self, password: bytes | None) -> bytes:
        encryption: serialization.KeySerializationEncryption
        if password is None:
            encryption = serialization.NoEncryption()
        else:
            encryption = serialization.BestAvailableEncryption(password)
        return self.certificate_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=encryption,
        )


class SSLCertificate:
    @classmethod
    def self_signed(
        cls,
        start_date: arrow.Arrow,
        private_key: SSLPrivateKey,
        host: str,
        days_valid: int = 365,
    ) -> "SSLCertificate":
        public_key = private_key.certificate_private_key.public_key()

        end_date = start_date.shift(days=days_valid)
        fields = [x509.NameAttribute(NameOID.COMMON_NAME, host)]

        subject = issuer = x509.Name(fields)
        builder = x509.CertificateBuilder()
        builder = builder.subject_name(subject)
        builder = builder.issuer_name(issuer)
        builder = builder.public_key(public_key)
        builder = builder.serial_number(x509.random_serial_number())
        builder = builder.not_valid_before(start_date.datetime)
        builder = builder.not_valid_after(end_date.datetime)

        alt_name: x509.GeneralName
        try:
            ip_addr = ip_address(host)
        except ValueError:
            alt_name = x509.DNSName(host)
        else:
            alt_name = x509.IPAddress(ip_addr)

        builder = builder.add_extension(x509.SubjectAlternativeName([alt_name]), critical=False)

        cert = builder.sign(private_key.certificate_private_key, hashes.SHA512())

        return cls(cert)

    def __init__(self, certificate: x509.Certificate):
        self._certificate = certificate

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SSLCertificate) and self._certificate == other._certificate

    def to_pem_bytes(self) -> bytes:
        return self._certificate.public_bytes(serialization.Encoding.PEM)

    @classmethod
    def list_from_pem_bytes(cls, data: bytes) -> list["SSLCertificate"]:
        return [cls(cert) for cert in x509.load_pem_x509_certificates(data)]

    @property
    def declared_host(self) -> str:
        host = self._certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value
        if not isinstance(host, str):
            raise TypeError(f"Subject hostname is not a string: {host!r}")
        return host


def generate_self_signed(host: str, days_valid: int = 365) -> tuple[bytes, bytes]:
    """Returns an unencrypted PEM private key and a matching self-signed PEM certificate."""
    private_key = SSLPrivateKey.generate()
    certificate = SSLCertificate.self_signed(arrow.utcnow(), private_key, host, days_valid)
    return private_key.to_pem_bytes(password=None), certificate.to_pem_bytes()


def _unpack_material(
    material: TLSMaterial,
) -> tuple[SSLPrivateKey, list[SSLCertificate], list[SSLCertificate]]:
    """Returns the private key, the certificate chain (leaf first) and the CA certificates."""
    if isinstance(material, PfxMaterial):
        pfx_key, pfx_certificate, additional = pkcs12.load_key_and_certificates(
            material.pfx, material.passphrase.encode() or None
        )
        if pfx_key is None or pfx_certificate is None:
            raise ValueError("PFX must contain both a private key and a certificate")
        private_key = SSLPrivateKey._checked(pfx_key)  # noqa: SLF001
        chain = [SSLCertificate(pfx_certificate)]
        ca_certs = [SSLCertificate(cert) for cert in additional]
    else:
        private_key = SSLPrivateKey.from_pem_bytes(material.key)
        chain = SSLCertificate.list_from_pem_bytes(material.cert)
        ca_certs = SSLCertificate.list_from_pem_bytes(material.ca)

    return private_key, chain, ca_certs


def fill_ssl_context(
    context: ssl.SSLContext,
    private_key: SSLPrivateKey,
    chain: list[SSLCertificate],
    ca_certs: list[SSLCertificate],
) -> None:
    if ca_certs:
        ca_data = b"\n".join(cert.to_pem_bytes() for cert in ca_certs).decode()
        context.load_verify_locations(cadata=ca_data)

    # Encrypt the temporary file we create with an emphemeral password.
    keyfile_password = os.urandom(32)

    chain_data = b"".join(cert.to_pem_bytes() for cert in chain)
    with (
        temp_file(chain_data) as certfile,
        temp_file(private_key.to_pem_bytes(keyfile_password)) as keyfile,
    ):
        context.load_cert_chain(certfile=certfile, keyfile=keyfile, password=keyfile_password)


def make_ssl_context(
    material: TLSMaterial, *, ciphers: str, alpn_protocols: list[str]
) -> ssl.SSLContext:
    """
    Creates a server-side SSL context holding the given material.
    Raises `CertificateLoadError` if the material cannot be parsed or is inconsistent.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    # Not configurable: SSLv2/SSLv3 are never negotiated, TLS 1.2 is the floor.
    context.options |= ssl.OP_NO_SSLv2 | ssl.OP_NO_SSLv3 | ssl.OP_NO_COMPRESSION
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.set_ciphers(ciphers)
    context.set_alpn_protocols(alpn_protocols)

    try:
        private_key, chain, ca_certs = _unpack_material(material)
        fill_ssl_context(context, private_key, chain, ca_certs)
    except ssl.SSLError as exc:
        raise CertificateLoadError(f"Invalid TLS material: {exc.reason or exc}") from exc
    except (ValueError, TypeError) as exc:
        raise CertificateLoadError(f"Invalid TLS material: {exc}") from exc

    return context
