"""
Version Policy
Decides whether a bundled extension should replace what is installed
"""

import re

_LEADING_DIGITS = re.compile(r'[0-9]*')  # ASCII only


def parse_version(version):
    """Parse a dotted version string into a (major, minor, patch) triple.

    Only the leading ASCII digits of each dot-separated segment count, so
    "1.0.0-beta" parses as (1, 0, 0). Missing or non-numeric segments are 0.

    Args:
        version: str - Version string, possibly empty

    Returns:
        tuple - Three non-negative ints
    """
    parts = [0, 0, 0]
    for idx, segment in enumerate(version.split('.')[:3]):
        digits = _LEADING_DIGITS.match(segment).group(0)
        parts[idx] = int(digits) if digits else 0
    return tuple(parts)


def is_newer_version(bundled, installed):
    """Return True if the bundled version sorts strictly after the installed one."""
    return parse_version(bundled) > parse_version(installed)


def is_newer_timestamp(bundled, installed):
    """Compare modification times where None means unknown.

    Args:
        bundled: Optional int - Bundled archive mtime in nanoseconds
        installed: Optional int - Installed descriptor mtime in nanoseconds

    Returns:
        bool - True when both are known and bundled is later, or only
        the bundled time is known
    """
    if bundled is None:
        return False
    if installed is None:
        return True
    return bundled > installed


def should_install(clean_up, replacements_disabled, dir_exists, bundled_version,
                   installed_version, bundled_mtime, installed_mtime):
    """Decide whether to (re)install a bundled package.

    Disabled replacements win over every other input. Otherwise any of a clean
    pass, a missing extension directory, a newer bundled version, an empty
    bundled version or a newer bundled archive triggers an install.

    Returns:
        bool - True to install
    """
    if replacements_disabled:
        return False
    return (clean_up
            or not dir_exists
            or is_newer_version(bundled_version, installed_version)
            or bundled_version == ''
            or is_newer_timestamp(bundled_mtime, installed_mtime))
