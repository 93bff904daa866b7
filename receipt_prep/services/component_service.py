import logging
import os

import cv2
import numpy as np
from dotenv import load_dotenv

from ..models.geometry import ConnectedRegion
from ..models.mask import BinaryMask

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ComponentService:
    """
    Finds the largest 8-connected region of a mask (the candidate receipt).

    Seeds are taken on a coarse grid, top-to-bottom then left-to-right.
    Every component containing a seed is a candidate; the biggest one wins,
    ties going to the component whose first seed came earliest.
    """

    def __init__(self, seed_stride: int = None):
        if seed_stride is None:
            seed_stride = int(os.getenv("COMPONENT_SEED_STRIDE", "5"))
        if seed_stride < 1:
            raise ValueError(f"Seed stride must be >= 1, got {seed_stride}")
        self.seed_stride = seed_stride

    def largest_component(self, mask: BinaryMask) -> ConnectedRegion:
        if mask.count == 0:
            return ConnectedRegion()

        # Labeling stands in for the flood fill, seeds only pick candidates
        n_labels, labels, stats, _ = cv2.connectedComponentsWithStats(
            mask.values.astype(np.uint8), connectivity=8
        )

        seeds = labels[::self.seed_stride, ::self.seed_stride].ravel()
        seeds = seeds[seeds != 0]
        if seeds.size == 0:
            return ConnectedRegion()

        # Candidate labels in the order their first seed was reached
        unique, first_seen = np.unique(seeds, return_index=True)
        candidates = unique[np.argsort(first_seen)]

        best_label, best_area = 0, 0
        for label in candidates:
            area = int(stats[label, cv2.CC_STAT_AREA])
            if area > best_area:
                best_label, best_area = int(label), area

        logger.debug(f"{n_labels - 1} components, {candidates.size} seeded, largest={best_area}px")

        ys, xs = np.nonzero(labels == best_label)
        return ConnectedRegion(xs=xs.astype(np.int64), ys=ys.astype(np.int64))
