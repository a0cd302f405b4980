"""
Smoke tests for sst-lowre.

These tests verify basic functionality without running full simulations.
"""

import json

import numpy as np
import pytest


def test_package_imports():
    """Verify the public API is importable."""
    import sst_lowre

    assert sst_lowre.__version__ == "0.1.0"
    assert "kOmegaSSTLowRe".lower() in sst_lowre.models.available_models()


def test_dataclass_validation():
    """Verify config dataclass validation works."""
    from sst_lowre.config import ChannelGeom
    from sst_lowre.utils import dc_from_dict

    # Valid config
    valid = {
        "Ly": 1.0,
        "Ny": 48,
        "y_first": 0.002,
        "growth_rate": 1.1,
        "_comment": "ignored",
    }
    geom = dc_from_dict(ChannelGeom, valid, name="geom")
    assert geom.Ly == 1.0
    assert geom.use_symmetry

    # Missing key should raise
    invalid = {"Ly": 1.0}  # Missing required fields
    with pytest.raises(ValueError, match="Missing keys"):
        dc_from_dict(ChannelGeom, invalid, name="geom")

    # Unknown key should raise
    unknown = dict(valid)
    unknown["extra"] = 123
    with pytest.raises(ValueError, match="Unknown keys"):
        dc_from_dict(ChannelGeom, unknown, name="geom")


def test_diagnostics_helpers():
    """Verify formatting helpers work."""
    from sst_lowre.utils import diagnostics_array, fmt_pair_sci, fmt_sci, relative_change

    assert "1.0e+00" in fmt_sci(1.0, prec=1)
    assert "nan" in fmt_sci(float("nan"))

    pair = fmt_pair_sci(1e-3, 1e3, prec=1)
    assert "," in pair

    d = diagnostics_array([1.0, -2.0, 3.0])
    assert d == {"min": -2.0, "max": 3.0, "finite": True}
    assert not diagnostics_array([1.0, np.inf])["finite"]

    a = np.array([1.0, 2.0])
    assert relative_change(a, a) == 0.0
    assert relative_change(2.0 * a, a) == pytest.approx(0.5)


def test_diagnostics_with_communicator():
    """Global reductions agree with the serial result on a single rank."""
    MPI = pytest.importorskip("mpi4py.MPI")
    from sst_lowre.utils import diagnostics_array, relative_change

    comm = MPI.COMM_SELF
    values = np.array([1.0, -2.0, 3.0])
    assert diagnostics_array(values, comm=comm) == diagnostics_array(values)
    assert not diagnostics_array([1.0, np.nan], comm=comm)["finite"]

    a = np.array([1.0, 2.0])
    assert relative_change(2.0 * a, a, comm=comm) == pytest.approx(0.5)


def test_mesh_stretch_coords():
    """Verify stretched coordinate generation."""
    from sst_lowre.geometry import generate_stretched_coords

    y = generate_stretched_coords(y_first=0.01, H=1.0, N=10, growth=1.2)

    assert y[0] == 0.0
    assert y[-1] == 1.0
    assert len(y) == 11  # N+1 points
    assert np.all(np.diff(y) > 0)  # Monotonically increasing
    assert y[1] < 1.0 / 10  # Refined at the wall

    y = generate_stretched_coords(y_first=0.005, H=1.0, N=20, growth=1.0, stretching="tanh")
    assert y[1] == pytest.approx(0.005, rel=1e-6)
    assert np.all(np.diff(y) > 0)

    with pytest.raises(ValueError, match="Unknown stretching"):
        generate_stretched_coords(0.01, 1.0, 10, 1.1, stretching="cosine")


def test_full_channel_faces_mirrored():
    from sst_lowre.config import ChannelGeom
    from sst_lowre.geometry import channel_faces, channel_wall_distance

    geom = ChannelGeom(Ly=2.0, Ny=20, y_first=0.01, growth_rate=1.1, use_symmetry=False)
    faces = channel_faces(geom)
    assert faces.size == 21
    np.testing.assert_allclose(faces, 2.0 - faces[::-1], atol=1e-12)

    yc = 0.5 * (faces[:-1] + faces[1:])
    d = channel_wall_distance(yc, 2.0, use_symmetry=False)
    np.testing.assert_allclose(d, d[::-1], atol=1e-12)
    assert np.all(d <= 1.0)

    with pytest.raises(ValueError, match="even Ny"):
        channel_faces(ChannelGeom(Ly=2.0, Ny=21, y_first=0.01, growth_rate=1.1, use_symmetry=False))


def test_initial_profiles():
    from sst_lowre.geometry import (
        initial_k_channel,
        initial_omega_channel,
        initial_velocity_channel,
    )

    y = np.linspace(0.001, 1.0, 50)
    u = initial_velocity_channel(y, 15.0, 1.0)
    assert np.all(u > 0)
    assert np.argmax(u) == y.size - 1  # Maximum on the symmetry plane

    k = initial_k_channel(y, 15.0)
    assert np.all(k > 0)

    omega = initial_omega_channel(y, 15.0, 1.0, nu=1.0 / 180)
    assert np.all(omega > 0)
    assert omega[0] > omega[-1]  # Wall value dominates near the wall


def test_table_and_history(tmp_path, capsys):
    from sst_lowre.utils import HistoryWriterCSV, StepTablePrinter

    table = StepTablePrinter([("iter", 6), ("res", 9)])
    table.row(["1", "1.0e-01"])
    table.row(["2", "5.0e-02"])
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 3  # header once
    assert "iter" in out[0]

    with pytest.raises(ValueError):
        table.row(["3"])

    path = tmp_path / "history.csv"
    with HistoryWriterCSV(path, ["iter", "residual"]) as hist:
        hist.write({"iter": 1, "residual": 0.5})
        hist.write({"iter": 2, "residual": 0.25})
    lines = path.read_text().splitlines()
    assert lines[0] == "iter,residual"
    assert len(lines) == 3

    disabled = HistoryWriterCSV(tmp_path / "none.csv", ["iter"], enabled=False)
    disabled.write({"iter": 1})
    disabled.close()
    assert not (tmp_path / "none.csv").exists()


def test_prepare_case_dir(tmp_path):
    from sst_lowre.utils import prepare_case_dir

    cfg = {"geom": {"Ly": 1.0}}
    paths = prepare_case_dir(tmp_path / "case", config_path=None, cfg=cfg)
    assert paths.case_dir.is_dir()
    assert json.loads(paths.config_used_json.read_text()) == cfg
    info = json.loads(paths.run_info_json.read_text())
    assert info["sst_lowre_version"] == "0.1.0"
    assert paths.history_csv.name == "history.csv"
