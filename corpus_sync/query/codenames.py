"""
Debian major version to release codename mapping.

Release rows are keyed by codename, callers ask by major version number.
"""
import logging
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

DEBIAN_CODENAMES: Dict[str, str] = {
    "8": "jessie",
    "9": "stretch",
    "10": "buster",
    "11": "bullseye",
    "12": "bookworm",
    "13": "trixie",
}


class UnsupportedVersionError(ValueError):
    """Raised when a major version has no known codename."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Debian {version} is not supported yet")


class CodenameResolver:
    """Static lookup from major version string to codename."""

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self.mapping = dict(mapping if mapping is not None else DEBIAN_CODENAMES)

    def resolve(self, major: str) -> str:
        """
        Return the codename for a major version.

        Raises:
            UnsupportedVersionError: If the version is not in the mapping
        """
        codename = self.mapping.get(str(major).strip())
        if codename is None:
            logger.warning(f"Unsupported Debian version requested: {major}")
            raise UnsupportedVersionError(str(major))
        return codename

    def supported_versions(self) -> List[str]:
        return sorted(
            self.mapping,
            key=lambda v: (not v.isdigit(), int(v) if v.isdigit() else 0, v)
        )
