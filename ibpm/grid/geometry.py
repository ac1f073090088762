"""
Immersed-boundary geometry: rigid bodies described by Lagrangian markers.

Boundary vectors (forces, velocities at markers) are flat arrays of length
2 * n_points: all x-components first, then all y-components.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import numpy.typing as npt
import yaml
from loguru import logger

from ..errors import ConfigurationError
from .motion import FixedPosition, Motion, motion_from_dict

NDArrayFloat = npt.NDArray[np.floating]


def to_boundary_vector(values: NDArrayFloat) -> NDArrayFloat:
    """(n, 2) marker values -> flat boundary vector [x..., y...]."""
    values = np.asarray(values, dtype=float).reshape(-1, 2)
    return np.concatenate([values[:, 0], values[:, 1]])


def from_boundary_vector(vector: NDArrayFloat) -> NDArrayFloat:
    """Flat boundary vector [x..., y...] -> (n, 2) marker values."""
    vector = np.asarray(vector, dtype=float)
    n = vector.size // 2
    return np.column_stack([vector[:n], vector[n:]])


# =============================================================================
# Shapes
# =============================================================================

def circle(xc: float, yc: float, radius: float, num_points: int) -> NDArrayFloat:
    """Equally spaced markers on a circle."""
    theta = 2.0 * np.pi * np.arange(num_points) / num_points
    return np.column_stack([xc + radius * np.cos(theta), yc + radius * np.sin(theta)])


def line(x0: float, y0: float, x1: float, y1: float, num_points: int) -> NDArrayFloat:
    """Markers on a straight segment, endpoints included."""
    s = np.linspace(0.0, 1.0, num_points)
    return np.column_stack([x0 + s * (x1 - x0), y0 + s * (y1 - y0)])


# =============================================================================
# Bodies
# =============================================================================

class RigidBody:
    """A set of markers moving rigidly according to a prescribed motion."""

    def __init__(self, points: NDArrayFloat, motion: Optional[Motion] = None,
                 name: str = "body", center: Sequence[float] = (0.0, 0.0)):
        self.name = name
        self.motion = motion if motion is not None else FixedPosition()
        self.center = np.asarray(center, dtype=float)
        self._reference = np.asarray(points, dtype=float).reshape(-1, 2).copy()
        self._points = self._reference.copy()
        self._velocities = np.zeros_like(self._reference)
        self.move(0.0)

    @property
    def num_points(self) -> int:
        return self._reference.shape[0]

    def is_stationary(self) -> bool:
        return self.motion.is_stationary()

    def move(self, time: float) -> None:
        """Place the markers at their position for the given time."""
        T = self.motion.transformation(time)
        c, s = np.cos(T.theta), np.sin(T.theta)
        rel = self._reference - self.center
        rot = np.column_stack([c * rel[:, 0] - s * rel[:, 1],
                               s * rel[:, 0] + c * rel[:, 1]])
        self._points = self.center + rot + np.array([T.x, T.y])
        self._velocities = np.column_stack([
            T.xdot - T.thetadot * rot[:, 1],
            T.ydot + T.thetadot * rot[:, 0],
        ])

    def get_points(self) -> NDArrayFloat:
        return self._points.copy()

    def get_velocities(self) -> NDArrayFloat:
        return self._velocities.copy()


def body_from_dict(data: Dict[str, Any]) -> RigidBody:
    """
    Build a body from a config mapping.

    Example:
        {name: cylinder, shape: circle, center: [0, 0], radius: 0.5,
         num_points: 40, motion: {type: fixed}}
    """
    shape = str(data.get('shape', 'points')).lower()
    name = data.get('name', shape)
    try:
        if shape == 'circle':
            xc, yc = data.get('center', (0.0, 0.0))
            points = circle(float(xc), float(yc), float(data['radius']), int(data['num_points']))
        elif shape == 'line':
            x0, y0 = data['start']
            x1, y1 = data['end']
            points = line(float(x0), float(y0), float(x1), float(y1), int(data['num_points']))
        elif shape == 'points':
            points = np.asarray(data['points'], dtype=float).reshape(-1, 2)
        else:
            raise ConfigurationError(f"Unknown body shape '{shape}' for body '{name}'")
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid definition for body '{name}': {e}") from e

    motion = motion_from_dict(data['motion']) if data.get('motion') else None
    return RigidBody(points, motion=motion, name=name,
                     center=data.get('rotation_center', (0.0, 0.0)))


# =============================================================================
# Geometry
# =============================================================================

class Geometry:
    """
    Collection of immersed bodies.

    `revision` increments whenever marker positions change, so operators
    built from the marker positions can be cached against it.
    """

    def __init__(self, bodies: Optional[List[RigidBody]] = None):
        self._bodies: List[RigidBody] = []
        self._time = 0.0
        self._revision = 0
        for body in bodies or []:
            self.add_body(body)

    def add_body(self, body: RigidBody) -> None:
        body.move(self._time)
        self._bodies.append(body)
        self._revision += 1

    @property
    def bodies(self) -> List[RigidBody]:
        return list(self._bodies)

    @property
    def num_points(self) -> int:
        return sum(b.num_points for b in self._bodies)

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def time(self) -> float:
        return self._time

    def is_stationary(self) -> bool:
        return all(b.is_stationary() for b in self._bodies)

    def move_bodies(self, time: float) -> None:
        """Reposition all moving bodies to the given time."""
        if time == self._time:
            return
        self._time = time
        moved = False
        for body in self._bodies:
            if not body.is_stationary():
                body.move(time)
                moved = True
        if moved:
            self._revision += 1

    def get_points(self) -> NDArrayFloat:
        """Marker positions, shape (n_points, 2)."""
        if not self._bodies:
            return np.zeros((0, 2))
        return np.vstack([b.get_points() for b in self._bodies])

    def get_velocities(self) -> NDArrayFloat:
        """Marker velocities as a boundary vector of length 2 * n_points."""
        if not self._bodies:
            return np.zeros(0)
        return to_boundary_vector(np.vstack([b.get_velocities() for b in self._bodies]))

    @classmethod
    def from_config(cls, bodies: List[Dict[str, Any]]) -> 'Geometry':
        return cls([body_from_dict(b) for b in bodies or []])

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'Geometry':
        """
        Load geometry from a YAML file with a top-level 'bodies' list.

        Raises
        ------
        ConfigurationError
            If the file is missing or malformed.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Geometry file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict) or not isinstance(data.get('bodies', []), list):
            raise ConfigurationError(f"Geometry file {path} must contain a 'bodies' list")
        geom = cls.from_config(data.get('bodies', []))
        logger.info(f"Read geometry from {path}: {len(geom.bodies)} bodies, "
                    f"{geom.num_points} points on the boundary")
        return geom
