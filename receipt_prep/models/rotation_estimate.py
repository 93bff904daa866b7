from __future__ import annotations
from dataclasses import dataclass, asdict

EDGE_GRADIENT_ANALYSIS = "edge_gradient_analysis"
INSUFFICIENT_EDGES = "insufficient_edges"
LARGE_ROTATION_REJECTED = "large_rotation_rejected"
NOT_ATTEMPTED = "not_attempted"


@dataclass(frozen=True)
class RotationEstimate:
    """
    Corrective rotation for one detection pass.

    angle      : degrees in [-45, 45], positive = clockwise as displayed
    confidence : dominant bucket weight / total weight, in [0, 1]
    accepted   : set by the caller's acceptance policy
    method     : how the estimate was reached (see module constants)
    """
    angle: float = 0.0
    confidence: float = 0.0
    accepted: bool = False
    method: str = EDGE_GRADIENT_ANALYSIS

    def to_dict(self) -> dict:
        return asdict(self)
