"""
Prescribed rigid-body motions for immersed boundaries.

A motion maps time to a rigid transform (translation x, y and rotation
theta) and its rate of change. Bodies apply the transform to their
reference points about a rotation center.
"""

from dataclasses import dataclass
from typing import Any, Dict, NamedTuple

import numpy as np

from ..errors import ConfigurationError


class Transform(NamedTuple):
    """Rigid transform and its time derivative."""
    x: float
    y: float
    theta: float
    xdot: float
    ydot: float
    thetadot: float


class Motion:
    """Base class for body motions."""

    def is_stationary(self) -> bool:
        return False

    def transformation(self, time: float) -> Transform:
        raise NotImplementedError


@dataclass
class FixedPosition(Motion):
    """Body held at a fixed offset and angle."""
    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0

    def is_stationary(self) -> bool:
        return True

    def transformation(self, time: float) -> Transform:
        return Transform(self.x, self.y, self.theta, 0.0, 0.0, 0.0)


@dataclass
class FixedVelocity(Motion):
    """Constant translation and rotation rates."""
    xdot: float = 0.0
    ydot: float = 0.0
    thetadot: float = 0.0
    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0

    def transformation(self, time: float) -> Transform:
        return Transform(
            self.x + self.xdot * time,
            self.y + self.ydot * time,
            self.theta + self.thetadot * time,
            self.xdot, self.ydot, self.thetadot,
        )


@dataclass
class PitchPlunge(Motion):
    """
    Sinusoidal pitch and plunge.

    theta(t) = A_p sin(2 pi f_p t + phi_p)
    y(t)     = A_h sin(2 pi f_h t + phi_h)
    """
    pitch_amplitude: float = 0.0      # radians
    pitch_frequency: float = 0.0
    pitch_phase: float = 0.0
    plunge_amplitude: float = 0.0
    plunge_frequency: float = 0.0
    plunge_phase: float = 0.0

    def transformation(self, time: float) -> Transform:
        wp = 2.0 * np.pi * self.pitch_frequency
        wh = 2.0 * np.pi * self.plunge_frequency
        theta = self.pitch_amplitude * np.sin(wp * time + self.pitch_phase)
        thetadot = self.pitch_amplitude * wp * np.cos(wp * time + self.pitch_phase)
        y = self.plunge_amplitude * np.sin(wh * time + self.plunge_phase)
        ydot = self.plunge_amplitude * wh * np.cos(wh * time + self.plunge_phase)
        return Transform(0.0, float(y), float(theta), 0.0, float(ydot), float(thetadot))


_MOTION_TYPES = {
    'fixed': FixedPosition,
    'velocity': FixedVelocity,
    'pitch_plunge': PitchPlunge,
}


def motion_from_dict(data: Dict[str, Any]) -> Motion:
    """
    Build a motion from a config mapping, e.g. {type: velocity, xdot: -1.0}.
    """
    data = dict(data)
    kind = str(data.pop('type', 'fixed')).lower()
    if kind not in _MOTION_TYPES:
        raise ConfigurationError(
            f"Unknown motion type '{kind}'. Choose from {sorted(_MOTION_TYPES)}")
    try:
        return _MOTION_TYPES[kind](**{k: float(v) for k, v in data.items()})
    except TypeError as e:
        raise ConfigurationError(f"Invalid parameters for motion '{kind}': {e}") from e
