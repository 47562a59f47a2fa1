# models/segmentation_engine.py
"""
Singleton wrapper around MediaPipe Selfie Segmentation.

• Loads the TFLite graph once per Python process, on first use.
• Exposes .predict(rgb)  →  float mask (H, W) in [0, 1].
"""
from __future__ import annotations
import logging
import threading

import numpy as np

logger = logging.getLogger(__name__)


class SegmentationEngine:
    _instance: "SegmentationEngine" | None = None
    _lock = threading.Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._init_runtime()
        return cls._instance

    # --------------------------------------------------
    def _init_runtime(self) -> None:
        # imported here so the pipeline and API import without the model stack
        import mediapipe as mp

        # model_selection=1  → landscape / selfie quality
        self._mp_seg = mp.solutions.selfie_segmentation.SelfieSegmentation(
            model_selection=1
        )
        # the graph is not re-entrant; uploads from several sessions queue here
        self._predict_lock = threading.Lock()
        logger.info("MediaPipe selfie segmentation loaded")

    # --------------------------------------------------
    def predict(self, rgb: np.ndarray) -> np.ndarray:
        """
        Args
        ----
        rgb : np.ndarray  (H, W, 3)  uint8  RGB order

        Returns
        -------
        mask : np.ndarray  (H, W)  float32  [0, 1]
        """
        with self._predict_lock:
            results = self._mp_seg.process(np.ascontiguousarray(rgb))
        return results.segmentation_mask.astype("float32")
