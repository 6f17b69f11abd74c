"""Map an EC2 instance type to ECS container resource units."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class ResourceUnitProfile:
    cpu_shares: int
    memory_reservation_mib: int

    def halved(self) -> "ResourceUnitProfile":
        """Allocation for the auxiliary task families (cron, ops)."""
        return ResourceUnitProfile(self.cpu_shares // 2, self.memory_reservation_mib // 2)


SMALL_PROFILE = ResourceUnitProfile(256, 256)
# NOTE: identical to SMALL_PROFILE; kept as observed until the owners confirm the intended medium sizing.
MEDIUM_PROFILE = ResourceUnitProfile(256, 256)
LARGE_PROFILE = ResourceUnitProfile(512, 512)
DEFAULT_PROFILE = ResourceUnitProfile(128, 128)

# First match wins, so "xlarge" resolves through the "large" keyword.
SIZING_RULES: Tuple[Tuple[str, ResourceUnitProfile], ...] = (
    ("small", SMALL_PROFILE),
    ("medium", MEDIUM_PROFILE),
    ("large", LARGE_PROFILE),
)


def resolve(instance_type: Optional[str]) -> ResourceUnitProfile:
    """Return the unit profile for ``instance_type``; never fails."""
    token = (instance_type or "").lower()
    for keyword, profile in SIZING_RULES:
        if keyword in token:
            return profile
    return DEFAULT_PROFILE
