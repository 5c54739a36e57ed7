"""
pylookupsync: Synchronize lookup tables with enumeration types.

This module describes where a lookup table synchronization connects to, and how the connection is secured.
"""

import enum
import ssl
from dataclasses import dataclass
from typing import Optional

import truststore


@enum.unique
class ConnectionSSLMode(enum.Enum):
    "Transport security of a database connection, as given in the `ssl` parameter of a connection string."

    disable = "disable"
    "Unencrypted connection."

    require = "require"
    "Encrypted connection; the server certificate is accepted without verification."

    verify_ca = "verify-ca"
    "Encrypted connection; the server certificate must be issued by a certificate authority the system trusts."

    verify_full = "verify-full"
    "As `verify-ca`, and the host name in the certificate must match the server name."

    @classmethod
    def parse(cls, value: str) -> "ConnectionSSLMode":
        try:
            return cls(value)
        except ValueError:
            modes = ", ".join(m.value for m in cls)
            raise ValueError(
                f"unsupported SSL mode: {value}; expected one of: {modes}"
            ) from None

    @property
    def encrypts(self) -> bool:
        return self is not ConnectionSSLMode.disable

    @property
    def verifies_certificate(self) -> bool:
        return self is ConnectionSSLMode.verify_ca or self is ConnectionSSLMode.verify_full


def create_context(ssl_mode: Optional[ConnectionSSLMode]) -> Optional[ssl.SSLContext]:
    "Creates an SSL context for a database driver, or returns `None` if the connection is not encrypted."

    if ssl_mode is None or not ssl_mode.encrypts:
        return None

    if not ssl_mode.verifies_certificate:
        ctx = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        return ctx

    # server certificates are checked against the trust store of the operating system
    ctx = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.check_hostname = ssl_mode is ConnectionSSLMode.verify_full
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


@dataclass(frozen=True)
class ConnectionParameters:
    """
    Where to connect, as extracted from a connection string.

    :param host: Database server, or `None` for the default server or a file-based database.
    :param port: Server port, or `None` for the default port of the dialect.
    :param username: User to log in as.
    :param password: Password to log in with.
    :param database: Database to select, or a file path for file-based databases.
    :param ssl: Transport security, or `None` for the default of the driver.
    """

    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    ssl: Optional[ConnectionSSLMode] = None

    def __str__(self) -> str:
        "A description of the connection target for log messages, which never includes the password."

        if self.host is None:
            target = self.database or "default database"
        else:
            target = self.host if self.port is None else f"{self.host}:{self.port}"
            if self.database:
                target = f"{target}/{self.database}"
        if self.username:
            target = f"{self.username} at {target}"
        if self.ssl is not None:
            target = f"{target} (ssl: {self.ssl.value})"
        return target
