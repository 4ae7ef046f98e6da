"""
First-order removal of plume mass over elapsed simulation time.

Dry deposition (v_d / h_mix) and chemical loss (lambda) combine into one
exponential attenuation:

    C(t) = C_0 * exp(-(v_d / h_mix + lambda) * t)
"""

import math

from models.gaussian_plume import ConcentrationGrid
from models.source import SourceParams


def decay_factor(
    elapsed_seconds: float,
    deposition_velocity: float,
    mixing_height: float,
    loss_rate: float,
) -> float:
    """
    Fraction of the emitted mass remaining after elapsed_seconds.

    Args:
        elapsed_seconds: Cumulative simulation time (s), >= 0.
        deposition_velocity: Dry deposition velocity (m/s).
        mixing_height: Mixing-layer depth (m), > 0.
        loss_rate: First-order chemical loss rate (1/s).

    Returns:
        Factor in (0, 1].
    """
    if mixing_height <= 0:
        raise ValueError("mixing_height must be > 0")
    rate = deposition_velocity / mixing_height + loss_rate
    return math.exp(-max(rate, 0.0) * max(elapsed_seconds, 0.0))


def apply_decay(
    grid: ConcentrationGrid,
    source: SourceParams,
    elapsed_seconds: float,
) -> ConcentrationGrid:
    """Attenuate every cell and the peak of a grid by the same factor."""
    factor = decay_factor(
        elapsed_seconds,
        source.deposition_velocity,
        source.mixing_height,
        source.loss_rate,
    )
    return grid.scaled(factor)
