from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from models.detection import Detection
from models.status import LoopState, LoopStats, LoopStatus


@dataclass
class PipelineContext:
    """Holds the detection loop's state and resources; avoids global singletons."""

    state: LoopState = LoopState.IDLE
    running: bool = False

    # Inference session, created on the first start and reused afterwards
    backend: Any = None
    # Camera, owned while running and released on stop or error
    source: Any = None

    stats: LoopStats = field(default_factory=LoopStats)
    message: str = ""
    error: Optional[str] = None
    last_detections: List[Detection] = field(default_factory=list)
    last_output_log: float = 0.0

    def snapshot(self) -> LoopStatus:
        return LoopStatus(
            state=self.state,
            message=self.message,
            error=self.error,
            stats=self.stats,
        )
