"""Numeric helpers shared by the scoring and aggregation code."""

import math

import numpy as np


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return float(np.clip(value, low, high))
