"""
Advective terms of the vorticity equation and their linearization/adjoint.

Nonlinear:   N(w)    = -d(U w)/dx - d(V w)/dy
Linearized:  N_L(w') = -d(U0 w' + U' w0)/dx - d(V0 w' + V' w0)/dy
Adjoint:     N_A     = N_L^T  (Euclidean inner product over interior nodes)

U, V are edge velocities averaged to the nodes. The perturbation velocity
(U', V') depends linearly on w' through the flux operator K = R (-Lap)^-1,
so the adjoint needs K^T, passed in as `flux_transpose`.
"""

from typing import Callable

import numpy as np
import numpy.typing as npt

from .operators import ddx, ddy, nodal_average, nodal_average_transpose

NDArrayFloat = npt.NDArray[np.floating]


def advection_term(omega: NDArrayFloat, u: NDArrayFloat, v: NDArrayFloat,
                   dx: float) -> NDArrayFloat:
    """-div(u omega) in conservative form."""
    U, V = nodal_average(u, v)
    return -(ddx(U * omega, dx) + ddy(V * omega, dx))


def linearized_advection_term(omega: NDArrayFloat, u: NDArrayFloat, v: NDArrayFloat,
                              omega0: NDArrayFloat, u0: NDArrayFloat, v0: NDArrayFloat,
                              dx: float) -> NDArrayFloat:
    """Advection linearized about the base flow (omega0, u0, v0)."""
    U, V = nodal_average(u, v)
    U0, V0 = nodal_average(u0, v0)
    return -(ddx(U0 * omega + U * omega0, dx) + ddy(V0 * omega + V * omega0, dx))


def adjoint_advection_term(z: NDArrayFloat,
                           omega0: NDArrayFloat, u0: NDArrayFloat, v0: NDArrayFloat,
                           dx: float,
                           flux_transpose: Callable[[NDArrayFloat, NDArrayFloat], NDArrayFloat]
                           ) -> NDArrayFloat:
    """
    Transpose of linearized_advection_term with respect to omega.

    Parameters
    ----------
    z : ndarray
        Adjoint vorticity at interior nodes.
    omega0, u0, v0 : ndarray
        Base flow vorticity and edge velocity.
    dx : float
        Grid spacing.
    flux_transpose : callable
        (u, v) -> interior field, the transpose of the vorticity-to-velocity map.
    """
    U0, V0 = nodal_average(u0, v0)
    zx = ddx(z, dx)
    zy = ddy(z, dx)
    # ddx^T = -ddx, so the sign of the local part flips
    local = U0 * zx + V0 * zy
    eu, ev = nodal_average_transpose(omega0 * zx, omega0 * zy)
    return local + flux_transpose(eu, ev)
