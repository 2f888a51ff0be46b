"""Input validation for BAMCNV tool handlers.

Provides validation for BAM file paths, remote URLs (SSRF prevention),
and chromosome name lists supplied by clients. Remote downloads are checked
on every hop: the first URL by ``validate_path`` and each redirect target by
``resolve_redirect``.
"""

from __future__ import annotations

import ipaddress
import re
import socket
from pathlib import Path
from urllib.parse import urljoin, urlparse

from ..config import BAMCNVConfig
from ..constants import REMOTE_FILE_SCHEMES

# Reference names as the SAM format allows them, minus whitespace
CHROM_NAME_PATTERN = re.compile(r"^[0-9A-Za-z!#$%&+./:;?@^_|~-][0-9A-Za-z!#$%&*+./:;=?@^_|~-]*$")

# Input length limits
MAX_FILE_PATH_LENGTH = 2048
MAX_CHROMOSOMES = 10_000
MAX_CHROM_NAME_LENGTH = 255

ALLOWED_FILE_EXTENSIONS = (".bam",)


def _is_private_ip(addr: str) -> bool:
    """True for anything a BAM download must not reach.

    Unparseable addresses count as private.
    """
    try:
        ip = ipaddress.ip_address(addr)
    except ValueError:
        return True

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


def _resolve_addresses(hostname: str, port: int) -> list[str]:
    try:
        addr_infos = socket.getaddrinfo(hostname, port, proto=socket.IPPROTO_TCP)
    except socket.gaierror as e:
        raise ValueError(f"Cannot resolve hostname '{hostname}': {e}") from e

    if not addr_infos:
        raise ValueError(f"No addresses found for hostname '{hostname}'")
    return [str(info[4][0]) for info in addr_infos]


def validate_remote_url(url: str, config: BAMCNVConfig) -> None:
    """Check that a remote BAM URL is safe to fetch.

    The scheme must be http(s), the host must be on the allow-list when one
    is configured, and every address the host resolves to must be public.

    Raises:
        ValueError: If any of the checks fail.
    """
    if not url.startswith(REMOTE_FILE_SCHEMES):
        raise ValueError(f"Scheme not supported for remote file: {url}")

    parsed = urlparse(url)
    hostname = parsed.hostname
    if not hostname:
        raise ValueError("Remote URL has no hostname")

    if config.allowed_remote_hosts and hostname not in config.allowed_remote_hosts:
        raise ValueError(f"Host '{hostname}' is not in the allowed remote hosts list")

    default_port = 443 if parsed.scheme == "https" else 80
    for addr in _resolve_addresses(hostname, parsed.port or default_port):
        if _is_private_ip(addr):
            raise ValueError("Remote URL resolves to private/internal address (blocked)")


def resolve_redirect(current_url: str, location: str | None, config: BAMCNVConfig) -> str:
    """Return the absolute target of a redirect after validating it.

    ``location`` may be relative to ``current_url``.

    Raises:
        ValueError: If the response carried no Location or the target is not
            safe to fetch.
    """
    if not location:
        raise ValueError(f"Redirect from {current_url} has no Location header")

    target = urljoin(current_url, location)
    validate_remote_url(target, config)
    return target


def validate_path(file_path: str, config: BAMCNVConfig) -> None:
    """Validate that the file path is allowed by configuration.

    Raises:
        ValueError: If the path is not allowed.
    """
    if len(file_path) > MAX_FILE_PATH_LENGTH:
        raise ValueError(f"File path too long (max {MAX_FILE_PATH_LENGTH} characters)")

    if "://" in file_path:
        if not config.allow_remote_files:
            raise ValueError("Remote files are disabled")

        validate_remote_url(file_path, config)
        return

    lower_path = file_path.lower()
    if not any(lower_path.endswith(ext) for ext in ALLOWED_FILE_EXTENSIONS):
        raise ValueError(f"Unsupported file type. Allowed extensions: {ALLOWED_FILE_EXTENSIONS}")

    if config.allowed_directories:
        try:
            abs_path = Path(file_path).resolve()
        except OSError as e:
            raise ValueError(f"Invalid path: {file_path}") from e

        allowed = False
        for d in config.allowed_directories:
            try:
                allowed_dir = Path(d).resolve()
                if abs_path.is_relative_to(allowed_dir):
                    allowed = True
                    break
            except OSError:
                continue

        if not allowed:
            raise ValueError("Path is not in allowed directories")


def validate_chromosomes(chromosomes: list[str] | None) -> frozenset[str] | None:
    """Validate a client-supplied chromosome list.

    Returns:
        The names as a frozenset, or None when no filter was given.

    Raises:
        ValueError: If the list is too long or holds an invalid name.
    """
    if not chromosomes:
        return None

    if len(chromosomes) > MAX_CHROMOSOMES:
        raise ValueError(f"Too many chromosomes (max {MAX_CHROMOSOMES})")

    for name in chromosomes:
        if len(name) > MAX_CHROM_NAME_LENGTH or not CHROM_NAME_PATTERN.fullmatch(name):
            raise ValueError(f"Invalid chromosome name: {name!r}")

    return frozenset(chromosomes)
