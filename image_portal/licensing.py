"""
License policy for discovered images.

Only openly-licensed works may be stored: public domain, CC0 and the
CC BY family. Matching is a case-insensitive substring test against the
Commons ``LicenseShortName`` value, so "CC BY-SA 4.0", "PD-US" and
"Public domain" all pass while "All rights reserved" does not.
"""

from __future__ import annotations

PERMISSIVE_LICENSES: tuple[str, ...] = ("public domain", "pd-", "cc0", "cc by")

# Commons pages with extmetadata but no short name get this label
UNKNOWN_LICENSE = "Unknown"


def is_permissive(license_text: str) -> bool:
    """Return True if ``license_text`` matches any entry of the allow-list."""
    lowered = (license_text or "").lower()
    return any(entry in lowered for entry in PERMISSIVE_LICENSES)
