"""
Inference backend interface.

Backends return pixel-space detections in the original frame coordinate system.
They are called from a worker thread by the detection loop and may raise; the
loop treats any exception as a failed cycle.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np

from models.detection import DetectionSet


class InferenceBackend(Protocol):
    def detect(self, frame: np.ndarray) -> DetectionSet:
        ...
