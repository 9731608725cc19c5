"""
Domain records for the Debian security-tracker corpus.

The corpus is a three-level tree: one VulnerabilityRecord per advisory
identifier, owning one Package per affected source package, each owning one
Release per Debian codename the tracker reports on.

Design decisions:
- Plain dataclasses, no ORM: the store maps them to rows explicitly
- Empty string (not None) for missing fixed_version/urgency/version,
  matching how the tracker publishes them
- Status is kept as an opaque string; only "open" and "resolved" have
  meaning to the query layer
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

STATUS_OPEN = "open"
STATUS_RESOLVED = "resolved"


@dataclass
class Release:
    """Per-codename advisory entry for one package."""
    product_name: str  # codename, e.g. bullseye
    status: str
    fixed_version: str = ""
    urgency: str = ""
    version: str = ""


@dataclass
class Package:
    """A source package affected by a vulnerability."""
    package_name: str
    releases: List[Release] = field(default_factory=list)


@dataclass
class VulnerabilityRecord:
    """
    One advisory identifier with its full package/release tree.

    The record exclusively owns its packages; replacing the corpus
    replaces the whole tree.
    """
    cve_id: str
    scope: str = ""
    description: str = ""
    packages: List[Package] = field(default_factory=list)

    def package_names(self) -> List[str]:
        return [pkg.package_name for pkg in self.packages]

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to a JSON-serializable dictionary."""
        return asdict(self)
