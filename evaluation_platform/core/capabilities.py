"""
Capability Grants - Accelerator Evaluation Platform
evaluation_platform/core/capabilities.py

A CapabilityGrant is the pre-authorization result handed to every mutating
service call. Identity and session handling live outside this package; the
HTTP layer builds a grant from upstream headers.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from evaluation_platform.core.exceptions import PermissionDeniedException
from evaluation_platform.models.enumerations import Capability


@dataclass(frozen=True)
class CapabilityGrant:
    caller_id: str
    capabilities: FrozenSet[Capability] = field(default_factory=frozenset)

    @classmethod
    def of(cls, caller_id: str, *capabilities: Capability) -> "CapabilityGrant":
        return cls(caller_id=caller_id, capabilities=frozenset(capabilities))

    @classmethod
    def from_header(cls, caller_id: str, header: Optional[str]) -> "CapabilityGrant":
        """Parse a comma separated capability header, ignoring unknown names."""
        known = {c.value: c for c in Capability}
        parsed = {
            known[token.strip()]
            for token in (header or "").split(",")
            if token.strip() in known
        }
        return cls(caller_id=caller_id, capabilities=frozenset(parsed))

    def require(self, capability: Capability) -> None:
        """Raise PermissionDeniedException unless the grant holds the capability."""
        if capability not in self.capabilities:
            raise PermissionDeniedException(capability.value, self.caller_id)
