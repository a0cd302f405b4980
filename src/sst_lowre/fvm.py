"""
Finite-volume discretization of a wall-normal channel (1-D).

Cell-centred control volumes between y=0 (wall) and y=Ly (symmetry plane
for a half channel, second wall otherwise). Implements the Discretization
collaborator of the turbulence closure:

    vol*(psi - psi_old)/dt - [D dpsi/dy]_faces = vol*(Su - Sp*psi)

Face diffusivities are linearly interpolated, gradients use Gauss linear
face values, the linear systems are solved with Jacobi-preconditioned
BiCGStab under an iteration budget.
"""

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from sst_lowre.config import ChannelGeom
from sst_lowre.geometry import channel_faces, channel_wall_distance
from sst_lowre.models.base import Discretization, SolveInfo, TransportEquation


class ChannelFVM(Discretization):
    """Stretched 1-D finite-volume grid across a channel."""

    def __init__(
        self,
        faces,
        *,
        use_symmetry: bool = True,
        dt: float = 1.0,
        rtol: float = 1e-8,
        max_iter: int = 500,
        wall_values: dict[str, float] | None = None,
    ):
        faces = np.asarray(faces, dtype=float)
        if faces.ndim != 1 or faces.size < 3 or np.any(np.diff(faces) <= 0.0):
            raise ValueError("faces must be a strictly increasing array of at least 3 points")
        if dt <= 0.0:
            raise ValueError(f"dt must be > 0, got {dt}")

        self.faces = faces
        self.use_symmetry = use_symmetry
        self.dt = float(dt)
        self.rtol = float(rtol)
        self.max_iter = int(max_iter)
        # Dirichlet wall values; fields not listed are zero-gradient at walls
        self.wall_values = {"k": 0.0, "nut": 0.0, "U": 0.0}
        if wall_values:
            self.wall_values.update(wall_values)

        self.yc = 0.5 * (faces[:-1] + faces[1:])
        self.vol = np.diff(faces)
        self.Ly = float(faces[-1])
        self._y = channel_wall_distance(self.yc - faces[0], self.Ly - faces[0], use_symmetry)
        self._y.flags.writeable = False

        # Interior face interpolation weight of the lower cell
        d = np.diff(self.yc)
        self._w_lower = (self.yc[1:] - faces[1:-1]) / d
        self._d_interior = d
        self._d_lower_wall = self.yc[0] - faces[0]
        self._d_upper_wall = faces[-1] - self.yc[-1]

        self.boundary_values: dict[str, dict[str, float]] = {}

    @classmethod
    def from_geom(cls, geom: ChannelGeom, **kwargs) -> "ChannelFVM":
        return cls(channel_faces(geom), use_symmetry=geom.use_symmetry, **kwargs)

    # ── Discretization interface ──────────────────────────────────

    @property
    def n_cells(self) -> int:
        return self.yc.size

    def wall_distance(self) -> np.ndarray:
        return self._y

    def near_wall_cells(self) -> tuple[np.ndarray, np.ndarray]:
        n = self.n_cells
        cells = np.array([0] if self.use_symmetry else [0, n - 1], dtype=np.int64)
        return cells, self._y[cells]

    def gradient(self, a, name: str | None = None) -> np.ndarray:
        """Gauss-linear cell gradient d(a)/dy."""
        a = np.asarray(a, dtype=float)
        wall = self.wall_values.get(name) if name is not None else None
        lower = a[0] if wall is None else wall
        if self.use_symmetry or wall is None:
            upper = a[-1]
        else:
            upper = wall
        face_vals = np.concatenate([
            [lower],
            self._w_lower * a[:-1] + (1.0 - self._w_lower) * a[1:],
            [upper],
        ])
        return np.diff(face_vals) / self.vol

    def grad_dot(self, a, b) -> np.ndarray:
        return self.gradient(a) * self.gradient(b)

    def solve_transport(self, name, psi, equation: TransportEquation):
        n = self.n_cells
        psi = np.asarray(psi, dtype=float)
        inv_dt = np.full(n, 1.0 / self.dt)
        A, b = self._assemble(
            name,
            np.broadcast_to(equation.diffusivity, (n,)),
            np.broadcast_to(equation.implicit, (n,)) + inv_dt,
            np.broadcast_to(equation.source, (n,)) + inv_dt * psi,
            equation.fixed_cells,
            equation.fixed_values,
        )

        iterations = 0

        def _count(_xk):
            nonlocal iterations
            iterations += 1

        M = sp.diags(1.0 / A.diagonal())
        x, info = spla.bicgstab(
            A, b, x0=psi.copy(), rtol=self.rtol, atol=0.0,
            maxiter=self.max_iter, M=M, callback=_count,
        )
        residual = float(np.linalg.norm(b - A @ x) / max(np.linalg.norm(b), 1e-300))
        return x, SolveInfo(name=name, converged=(info == 0), iterations=iterations, residual=residual)

    def update_boundaries(self, name, values) -> None:
        wall = self.wall_values.get(name, float(values[0]))
        bv = {"wall": float(wall)}
        if self.use_symmetry:
            bv["symmetry"] = float(values[-1])
        self.boundary_values[name] = bv

    def all_finite(self, values) -> bool:
        return bool(np.isfinite(values).all())

    # ── Steady diffusion (momentum) ───────────────────────────────

    def solve_diffusion(self, name: str, D, source, D_wall: float | None = None) -> np.ndarray:
        """Direct solve of -d/dy(D dpsi/dy) = source with the wall values of `name`.

        D_wall: diffusivity on wall faces (defaults to the wall-cell value).
        """
        n = self.n_cells
        A, b = self._assemble(
            name,
            np.broadcast_to(D, (n,)),
            np.zeros(n),
            np.broadcast_to(source, (n,)).astype(float),
            D_wall=D_wall,
        )
        return spla.spsolve(A, b)

    # ── Assembly ──────────────────────────────────────────────────

    def _assemble(self, name, D, Sp, Su, fixed_cells=None, fixed_values=None, D_wall=None):
        """Tridiagonal system for one field; Sp/Su per unit volume."""
        n = self.n_cells
        vol = self.vol

        D_face = self._w_lower * D[:-1] + (1.0 - self._w_lower) * D[1:]
        a_face = D_face / self._d_interior

        diag = vol * Sp
        diag[:-1] += a_face
        diag[1:] += a_face
        b = vol * Su

        wall = self.wall_values.get(name)
        if wall is not None:
            a_w = (D[0] if D_wall is None else D_wall) / self._d_lower_wall
            diag[0] += a_w
            b[0] += a_w * wall
            if not self.use_symmetry:
                a_w = (D[-1] if D_wall is None else D_wall) / self._d_upper_wall
                diag[-1] += a_w
                b[-1] += a_w * wall

        lower = -a_face.copy()
        upper = -a_face.copy()
        if fixed_cells is not None and len(fixed_cells):
            fixed_cells = np.asarray(fixed_cells, dtype=np.int64)
            diag[fixed_cells] = 1.0
            b[fixed_cells] = fixed_values
            # Row i couples to i+1 via upper[i] and to i-1 via lower[i-1]
            upper[fixed_cells[fixed_cells < n - 1]] = 0.0
            lower[fixed_cells[fixed_cells > 0] - 1] = 0.0

        A = sp.diags([lower, diag, upper], [-1, 0, 1], format="csr")
        return A, b
