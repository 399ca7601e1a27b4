import math
from dataclasses import dataclass
from typing import ClassVar, Optional, Tuple

import numpy as np

from stickdial.config import StickConfig


@dataclass(frozen=True)
class StickState:
    """
    Class to represent the discrete state of one stick for a single sample.
    A stick is either inside the center zone or pushed into one of the angular sectors.
    Instances are immutable and compared by value.
    """

    sector: Optional[int] = None
    "Sector index, or None when the stick is centered."

    CENTER: ClassVar["StickState"]
    "The centered (neutral) state."

    @staticmethod
    def of(sector: int) -> "StickState":
        """
        Returns the state of a stick pushed into `sector`.
        """
        return StickState(int(sector))

    @property
    def is_center(self) -> bool:
        """
        Whether the stick is inside the center zone.
        """
        return self.sector is None

    def __str__(self) -> str:
        if self.is_center:
            return "Center"
        return f"Sector({self.sector})"

    def __repr__(self) -> str:
        return str(self)


StickState.CENTER = StickState()


def clamp_sample(x: float, y: float) -> Tuple[float, float]:
    """
    Returns the sample with both coordinates forced into [-1, 1].
    NaN becomes 0 and infinities are clipped, so a broken reading never fails a tick.
    """
    values = np.nan_to_num(np.array([x, y], dtype=float), nan=0.0, posinf=1.0, neginf=-1.0)
    values = np.clip(values, -1.0, 1.0)

    return float(values[0]), float(values[1])


def sector_of_angle(theta: float, sector_count: int) -> int:
    """
    Returns the sector containing the direction `theta` (degrees, counter-clockwise from +x).

    Sector 0 is centered on +x and every sector is `360 / sector_count` degrees wide.
    An angle exactly on a boundary belongs to the counter-clockwise neighbour.
    """
    width = 360.0 / sector_count
    shifted = (theta + width / 2) % 360.0

    return int(shifted // width) % sector_count


def classify_axis(
    x: float,
    y: float,
    threshold: Optional[float] = None,
    sector_count: Optional[int] = None,
) -> StickState:
    """
    Classify a raw stick sample into a `StickState`.

    :param x: Horizontal deflection, -1 (left) to 1 (right).
    :param y: Vertical deflection, -1 (down) to 1 (up).
    :param threshold: Radius below which the stick counts as centered.
    :param sector_count: Number of angular sectors.
    """
    if threshold is None:
        threshold = StickConfig.CENTER_THRESHOLD
    if sector_count is None:
        sector_count = StickConfig.SECTOR_COUNT

    x, y = clamp_sample(x, y)

    if math.hypot(x, y) < threshold:
        return StickState.CENTER

    theta = math.degrees(math.atan2(y, x))
    return StickState.of(sector_of_angle(theta, sector_count))
