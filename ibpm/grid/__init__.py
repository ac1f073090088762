"""
Grid and immersed-boundary geometry.

This package provides:
    - Uniform Cartesian grid (node, interior and edge layouts)
    - Rigid bodies described by Lagrangian markers
    - Prescribed body motions
"""

from .cartesian import Grid

from .motion import (
    Transform,
    Motion,
    FixedPosition,
    FixedVelocity,
    PitchPlunge,
    motion_from_dict,
)

from .geometry import (
    Geometry,
    RigidBody,
    body_from_dict,
    circle,
    line,
    to_boundary_vector,
    from_boundary_vector,
)

__all__ = [
    'Grid',
    # Motions
    'Transform',
    'Motion',
    'FixedPosition',
    'FixedVelocity',
    'PitchPlunge',
    'motion_from_dict',
    # Geometry
    'Geometry',
    'RigidBody',
    'body_from_dict',
    'circle',
    'line',
    'to_boundary_vector',
    'from_boundary_vector',
]
