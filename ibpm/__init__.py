"""
Immersed Boundary Projection Method (IBPM) for 2D incompressible flow.

Vorticity/streamfunction formulation on a uniform Cartesian grid, with
no-slip enforced at immersed-boundary markers through a projection step.
"""

__version__ = "0.1.0"
