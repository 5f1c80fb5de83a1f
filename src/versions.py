"""
Version normalization for upgrade confirmation.

Machines carry bare versions ("1.2.3") while kubelets report them with a
"v" prefix ("v1.2.3"). Both sides go through normalize_version() and are
compared as exact strings. Prerelease and build metadata are rejected.
"""

import re

from errors import UnsupportedVersionError

_RELEASE_RE = re.compile(r"^\d+\.\d+\.\d+$")


def normalize_version(value: str) -> str:
    """
    Normalize a version string to MAJOR.MINOR.PATCH.

    Args:
        value: Version such as "1.2.3" or "v1.2.3"

    Returns:
        Normalized version without prefix

    Raises:
        UnsupportedVersionError: If the value is not a plain release
    """
    if not isinstance(value, str):
        raise UnsupportedVersionError(f"Version must be a string, got {value!r}")

    version = value.strip()
    if version.startswith("v"):
        version = version[1:]

    if not _RELEASE_RE.match(version):
        raise UnsupportedVersionError(
            f"Unsupported version {value!r}: expected MAJOR.MINOR.PATCH "
            "without prerelease or build metadata"
        )
    return version


def versions_match(reported: str, target: str) -> bool:
    """Return True if a reported version is exactly the target version."""
    try:
        reported_version = normalize_version(reported)
    except UnsupportedVersionError:
        return False
    return reported_version == normalize_version(target)
