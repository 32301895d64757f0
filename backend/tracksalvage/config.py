"""
Decode configuration.

Defaults can be overridden through environment variables, e.g.
TRACKSALVAGE_STRICT=1 to abort a stream on its first malformed line.
"""

import os
from dataclasses import dataclass


STRICT_ENV = "TRACKSALVAGE_STRICT"
REQUIRE_BOTH_ENV = "TRACKSALVAGE_REQUIRE_BOTH"
PARALLEL_ENV = "TRACKSALVAGE_PARALLEL"
EPOCH_TOLERANCE_ENV = "TRACKSALVAGE_EPOCH_TOLERANCE_S"
RFC3339_TOLERANCE_ENV = "TRACKSALVAGE_RFC3339_TOLERANCE_S"
ANCHOR_INTERVAL_ENV = "TRACKSALVAGE_ANCHOR_INTERVAL_MS"

DEFAULT_ANCHOR_INTERVAL_MS = 60000  # nominal spacing of H records


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value not in ("0", "false", "False", "")


@dataclass(frozen=True)
class DecodeOptions:
    """Tunables for a single decode pass."""

    # Abort the owning stream on a malformed line instead of skipping it
    strict: bool = False
    # Treat a missing .gps or .acc member as a ContainerError
    require_both_members: bool = False
    # Decode the two streams on separate worker threads
    parallel: bool = True

    epoch_tolerance_s: float = 0.0
    rfc3339_tolerance_s: float = 1.0  # absorbs second truncation in the text form
    anchor_interval_ms: int = DEFAULT_ANCHOR_INTERVAL_MS

    @classmethod
    def from_env(cls) -> "DecodeOptions":
        return cls(
            strict=_env_flag(STRICT_ENV, False),
            require_both_members=_env_flag(REQUIRE_BOTH_ENV, False),
            parallel=_env_flag(PARALLEL_ENV, True),
            epoch_tolerance_s=float(os.getenv(EPOCH_TOLERANCE_ENV, "0.0")),
            rfc3339_tolerance_s=float(os.getenv(RFC3339_TOLERANCE_ENV, "1.0")),
            anchor_interval_ms=int(os.getenv(ANCHOR_INTERVAL_ENV, str(DEFAULT_ANCHOR_INTERVAL_MS))),
        )
