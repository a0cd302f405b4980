"""
DOLFINx finite-element collaborators for the k-omega-SST low-Re closure.

P1 Lagrange scalar space on a wall-refined 2-D channel mesh. Every field the
closure sees is the local DOF array (owned + ghost) of a Function in that
space; transport solves assemble the generic template

    (psi - psi_n)/dt + u.grad(psi) - div(D grad psi) = Su - Sp*psi

with UFL and solve it with PETSc KSP (BCGS + hypre BoomerAMG). Requires
DOLFINx 0.10+, petsc4py and mpi4py.
"""

import numpy as np
from mpi4py import MPI
from petsc4py import PETSc

from dolfinx import mesh
from dolfinx.fem import (
    Constant,
    Expression,
    Function,
    assemble_scalar,
    dirichletbc,
    form,
    functionspace,
    locate_dofs_topological,
)
from dolfinx.fem.petsc import (
    apply_lifting,
    assemble_matrix,
    assemble_vector,
    create_matrix,
    create_vector,
    set_bc,
)
from dolfinx.mesh import CellType

from ufl import (
    TestFunction,
    TrialFunction,
    as_vector,
    dev,
    dot,
    dx,
    grad,
    inner,
    lhs,
    rhs,
    sym,
)

from sst_lowre.config import ChannelGeom
from sst_lowre.geometry import channel_faces, channel_wall_distance
from sst_lowre.models.base import (
    Discretization,
    MomentumCollaborator,
    SolveInfo,
    StrainInvariants,
    TransportCollaborator,
    TransportEquation,
)


# =============================================================================
# Mesh
# =============================================================================


def create_channel_mesh(
    geom: ChannelGeom,
    *,
    Lx: float = 1.0,
    Nx: int = 4,
    cell_type: str = "quadrilateral",
    comm=MPI.COMM_WORLD,
):
    """Rectangle [0,Lx]x[0,Ly] with the y-coordinates mapped onto the stretched channel grid."""
    y_coords = channel_faces(geom)
    Ny = y_coords.size - 1
    ct = CellType.triangle if cell_type == "triangle" else CellType.quadrilateral

    domain = mesh.create_rectangle(comm, [[0.0, 0.0], [Lx, geom.Ly]], [Nx, Ny], cell_type=ct)

    # Deform mesh: map uniform y to stretched y (piecewise linear)
    x = domain.geometry.x
    y_uniform = np.linspace(0.0, geom.Ly, Ny + 1)
    x[:, 1] = np.interp(x[:, 1], y_uniform, y_coords)
    return domain


def locate_wall_facets(domain, Ly: float, use_symmetry: bool = True) -> np.ndarray:
    """Facets on y=0 (and y=Ly for a full channel)."""
    fdim = domain.topology.dim - 1
    tol = 1e-10

    def wall(x):
        at_bottom = np.isclose(x[1], 0.0, atol=tol)
        if use_symmetry:
            return at_bottom
        return at_bottom | np.isclose(x[1], Ly, atol=tol)

    return mesh.locate_entities_boundary(domain, fdim, wall)


def infer_first_offwall_spacing(domain, Ly: float, use_symmetry: bool, tol: float = 1e-12) -> float:
    """Smallest positive wall distance of any mesh node (global over ranks)."""
    y = domain.geometry.x[:, 1]
    wall_distance = y if use_symmetry else np.minimum(y, Ly - y)

    positive = wall_distance[wall_distance > tol]
    local_min = float(np.min(positive)) if positive.size > 0 else np.inf
    y_first = float(domain.comm.allreduce(local_min, op=MPI.MIN))
    if not np.isfinite(y_first):
        raise RuntimeError("Could not infer first off-wall spacing from mesh geometry.")
    return y_first


def compute_wall_distance_channel(S, Ly: float, use_symmetry: bool = True) -> np.ndarray:
    """Wall distance at every local DOF of S."""
    y_coords = S.tabulate_dof_coordinates()[:, 1]
    return channel_wall_distance(y_coords, Ly, use_symmetry)


# =============================================================================
# Discretization
# =============================================================================


class _TransportSystem:
    """UFL forms, PETSc matrix/vector and KSP of one transported field."""

    def __init__(self, S, dt_c, velocity, rtol: float, max_iter: int):
        self.psi = Function(S)
        self.psi_n = Function(S)
        self.D = Function(S)
        self.Su = Function(S)
        self.Sp = Function(S)
        self.g = Function(S)  # Dirichlet values

        psi, phi = TrialFunction(S), TestFunction(S)
        F = (
            (psi - self.psi_n) / dt_c * phi * dx
            + self.D * inner(grad(psi), grad(phi)) * dx
            + self.Sp * psi * phi * dx
            - self.Su * phi * dx
        )
        if velocity is not None:
            F += dot(velocity, grad(psi)) * phi * dx
        self.a = form(lhs(F))
        self.L = form(rhs(F))

        self.A = create_matrix(self.a)
        self.b = create_vector(S)

        comm = S.mesh.comm
        self.ksp = PETSc.KSP().create(comm)
        self.ksp.setOperators(self.A)
        self.ksp.setType(PETSc.KSP.Type.BCGS)
        pc = self.ksp.getPC()
        pc.setType(PETSc.PC.Type.HYPRE)
        pc.setHYPREType("boomeramg")
        self.ksp.setTolerances(rtol=rtol, max_it=max_iter)
        self.ksp.setInitialGuessNonzero(True)

    def destroy(self) -> None:
        self.ksp.destroy()
        self.A.destroy()
        self.b.destroy()


def _set(fn: Function, values) -> None:
    fn.x.array[:] = values
    fn.x.scatter_forward()


class FEMDiscretization(Discretization):
    """P1 finite-element collaborator on a DOLFINx channel mesh."""

    def __init__(
        self,
        domain,
        geom: ChannelGeom,
        *,
        dt: float = 1.0,
        rtol: float = 1e-8,
        max_iter: int = 500,
        velocity=None,
        wall_values: dict[str, float] | None = None,
    ):
        if dt <= 0.0:
            raise ValueError(f"dt must be > 0, got {dt}")
        self.domain = domain
        self.comm = domain.comm
        self.S = functionspace(domain, ("Lagrange", 1))
        self.dt_c = Constant(domain, PETSc.ScalarType(dt))
        self.velocity = velocity
        self.rtol = float(rtol)
        self.max_iter = int(max_iter)
        self.wall_values = {"k": 0.0, "nut": 0.0, "U": 0.0}
        if wall_values:
            self.wall_values.update(wall_values)

        fdim = domain.topology.dim - 1
        wall_facets = locate_wall_facets(domain, geom.Ly, geom.use_symmetry)
        self.wall_dofs = locate_dofs_topological(self.S, fdim, wall_facets)

        self._y = compute_wall_distance_channel(self.S, geom.Ly, geom.use_symmetry)
        self._y.flags.writeable = False
        self.y_first = infer_first_offwall_spacing(domain, geom.Ly, geom.use_symmetry)

        index_map = self.S.dofmap.index_map
        self.n_owned = index_map.size_local * self.S.dofmap.index_map_bs

        # grad(a).grad(b) evaluated at the P1 interpolation points
        self._ga = Function(self.S)
        self._gb = Function(self.S)
        self._gd = Function(self.S)
        self._grad_dot_expr = Expression(
            dot(grad(self._ga), grad(self._gb)), self.S.element.interpolation_points
        )

        self._systems: dict[str, _TransportSystem] = {}
        self.functions: dict[str, Function] = {}

    # ── Discretization interface ──────────────────────────────────

    @property
    def n_cells(self) -> int:
        return self._y.size

    def wall_distance(self) -> np.ndarray:
        return self._y

    def near_wall_cells(self) -> tuple[np.ndarray, np.ndarray]:
        # Wall nodes carry the near-wall omega at the first off-wall spacing
        cells = np.asarray(self.wall_dofs, dtype=np.int64)
        return cells, np.full(cells.size, self.y_first)

    def grad_dot(self, a, b) -> np.ndarray:
        _set(self._ga, a)
        _set(self._gb, b)
        self._gd.interpolate(self._grad_dot_expr)
        return self._gd.x.array.copy()

    def _system(self, name: str) -> _TransportSystem:
        system = self._systems.get(name)
        if system is None:
            system = _TransportSystem(self.S, self.dt_c, self.velocity, self.rtol, self.max_iter)
            self._systems[name] = system
        return system

    def _bcs(self, name: str, system: _TransportSystem, equation: TransportEquation):
        dofs = []
        wall = self.wall_values.get(name)
        if wall is not None:
            system.g.x.array[self.wall_dofs] = wall
            dofs.append(np.asarray(self.wall_dofs, dtype=np.int32))
        if len(equation.fixed_cells):
            fixed = np.asarray(equation.fixed_cells, dtype=np.int32)
            system.g.x.array[fixed] = equation.fixed_values
            dofs.append(fixed)
        if not dofs:
            return []
        system.g.x.scatter_forward()
        return [dirichletbc(system.g, np.unique(np.concatenate(dofs)))]

    def solve_transport(self, name, psi, equation: TransportEquation):
        n = self.n_cells
        system = self._system(name)
        _set(system.psi_n, psi)
        _set(system.psi, psi)
        _set(system.D, np.broadcast_to(equation.diffusivity, (n,)))
        _set(system.Su, np.broadcast_to(equation.source, (n,)))
        _set(system.Sp, np.broadcast_to(equation.implicit, (n,)))
        bcs = self._bcs(name, system, equation)

        A, b = system.A, system.b
        A.zeroEntries()
        assemble_matrix(A, system.a, bcs=bcs)
        A.assemble()

        with b.localForm() as loc:
            loc.set(0.0)
        assemble_vector(b, system.L)
        apply_lifting(b, [system.a], [bcs])
        b.ghostUpdate(addv=PETSc.InsertMode.ADD_VALUES, mode=PETSc.ScatterMode.REVERSE)
        set_bc(b, bcs)

        system.ksp.solve(b, system.psi.x.petsc_vec)
        system.psi.x.scatter_forward()

        reason = system.ksp.getConvergedReason()
        b_norm = b.norm()
        residual = system.ksp.getResidualNorm() / b_norm if b_norm > 0.0 else 0.0
        info = SolveInfo(
            name=name,
            converged=reason > 0,
            iterations=int(system.ksp.getIterationNumber()),
            residual=float(residual),
        )
        return system.psi.x.array.copy(), info

    def update_boundaries(self, name, values) -> None:
        fn = self.functions.get(name)
        if fn is None:
            fn = Function(self.S, name=name)
            self.functions[name] = fn
        fn.x.array[:] = values
        wall = self.wall_values.get(name)
        if wall is not None:
            fn.x.array[self.wall_dofs] = wall
        fn.x.scatter_forward()

    def all_finite(self, values) -> bool:
        local = bool(np.isfinite(np.asarray(values)[: self.n_owned]).all())
        return bool(self.comm.allreduce(local, op=MPI.LAND))

    def destroy(self) -> None:
        for system in self._systems.values():
            system.destroy()
        self._systems.clear()


# =============================================================================
# Momentum (fully-developed channel, streamwise component only)
# =============================================================================


class FEMMomentum(MomentumCollaborator):
    """
    Streamwise momentum -div((nu + nut) grad u) = f_x on the channel mesh.

    The velocity is U = (u, 0); the invariants are evaluated from grad(U)
    with UFL, so they stay valid if u varies in x.
    """

    def __init__(
        self,
        disc: FEMDiscretization,
        transport: TransportCollaborator,
        *,
        body_force: float = 1.0,
        under_relax: float = 0.7,
    ):
        self.disc = disc
        S = disc.S
        domain = disc.domain
        self.under_relax = float(under_relax)

        self.u = Function(S, name="u")
        self.u_new = Function(S)
        self.nu_eff = Function(S)
        self.f = Constant(domain, PETSc.ScalarType(body_force))

        u, v = TrialFunction(S), TestFunction(S)
        self.a = form(self.nu_eff * inner(grad(u), grad(v)) * dx)
        self.L = form(self.f * v * dx)
        self.bcs = [dirichletbc(PETSc.ScalarType(0.0), disc.wall_dofs, S)]
        self.A = create_matrix(self.a)
        self.b = create_vector(S)

        self.ksp = PETSc.KSP().create(domain.comm)
        self.ksp.setOperators(self.A)
        self.ksp.setType(PETSc.KSP.Type.CG)
        pc = self.ksp.getPC()
        pc.setType(PETSc.PC.Type.HYPRE)
        pc.setHYPREType("boomeramg")
        self.ksp.setTolerances(rtol=1e-8)

        self.transport = transport

        U = as_vector((self.u, 0.0))
        grad_U = grad(U)
        S2 = 2.0 * inner(sym(grad_U), sym(grad_U))
        G = inner(dev(2.0 * sym(grad_U)), grad_U)
        points = S.element.interpolation_points
        self._S2_expr = Expression(S2, points)
        self._G_expr = Expression(G, points)
        self._S2 = Function(S)
        self._G = Function(S)

    def set_velocity(self, values) -> None:
        _set(self.u, values)

    def solve(self, nut) -> np.ndarray:
        """One under-relaxed momentum solve with the current eddy viscosity."""
        _set(self.nu_eff, self.transport.nu() + np.asarray(nut))

        self.A.zeroEntries()
        assemble_matrix(self.A, self.a, bcs=self.bcs)
        self.A.assemble()
        with self.b.localForm() as loc:
            loc.set(0.0)
        assemble_vector(self.b, self.L)
        apply_lifting(self.b, [self.a], [self.bcs])
        self.b.ghostUpdate(addv=PETSc.InsertMode.ADD_VALUES, mode=PETSc.ScatterMode.REVERSE)
        set_bc(self.b, self.bcs)

        self.ksp.solve(self.b, self.u_new.x.petsc_vec)
        self.u_new.x.scatter_forward()

        ur = self.under_relax
        _set(self.u, ur * self.u_new.x.array + (1.0 - ur) * self.u.x.array)
        return self.u.x.array

    def strain_invariants(self) -> StrainInvariants:
        self._S2.interpolate(self._S2_expr)
        self._G.interpolate(self._G_expr)
        return StrainInvariants(S2=self._S2.x.array.copy(), GbyNu=self._G.x.array.copy())

    def bulk_velocity(self, Lx: float, Ly: float) -> float:
        local = float(assemble_scalar(form(self.u * dx)))
        return float(self.disc.comm.allreduce(local, op=MPI.SUM)) / (Lx * Ly)

    def destroy(self) -> None:
        self.ksp.destroy()
        self.A.destroy()
        self.b.destroy()


__all__ = [
    "create_channel_mesh",
    "locate_wall_facets",
    "infer_first_offwall_spacing",
    "compute_wall_distance_channel",
    "FEMDiscretization",
    "FEMMomentum",
]
