"""Worker identity for election candidates.

A candidate name has the form ``worker/<hostname>/<digest>`` where the
digest is an MD5 of the host's hardware addresses plus the process id.
Two processes on one host differ by pid, two hosts differ by hardware
address and hostname. Raw MAC addresses never appear in the name.
"""

from __future__ import annotations

import hashlib
import logging
import os
import socket
import warnings
from functools import lru_cache

import psutil

from sqlelect.errors import IdentityDerivationWarning

logger = logging.getLogger(__name__)

UNKNOWN_HOST = "unknown"
NULL_HARDWARE_ADDRESS = "00:00:00:00:00:00"


def get_hostname() -> str:
    """Return the host name, or a placeholder if it cannot be read."""
    try:
        hostname = socket.gethostname()
    except OSError as e:
        logger.warning(f"Hostname lookup failed: {e}")
        return UNKNOWN_HOST
    return hostname or UNKNOWN_HOST


def get_hardware_addresses() -> list[str]:
    """List the non-empty link-layer addresses of this host's interfaces, sorted.

    Sorting makes the result independent of enumeration order. Returns an
    empty list (with a warning) if the interfaces cannot be read.
    """
    try:
        interfaces = psutil.net_if_addrs()
    except (OSError, RuntimeError) as e:
        message = f"Cannot read network interfaces, worker id uses pid only: {e}"
        warnings.warn(message, IdentityDerivationWarning, stacklevel=2)
        logger.warning(message)
        return []

    addresses = []
    for addrs in interfaces.values():
        for addr in addrs:
            if addr.family != psutil.AF_LINK:
                continue
            value = (addr.address or "").lower().replace("-", ":")
            if value and value != NULL_HARDWARE_ADDRESS:
                addresses.append(value)
    return sorted(addresses)


def worker_id(addresses: list[str], pid: int) -> str:
    """Fingerprint hardware addresses and a pid into a 32 char hex digest."""
    parts = [*addresses, str(pid)]
    return hashlib.md5(",".join(parts).encode(), usedforsecurity=False).hexdigest()


def candidate_name(hostname: str, addresses: list[str], pid: int) -> str:
    return f"worker/{hostname}/{worker_id(addresses, pid)}"


@lru_cache(maxsize=1)
def worker_name() -> str:
    """Candidate name of the current process, derived once."""
    return candidate_name(get_hostname(), get_hardware_addresses(), os.getpid())
