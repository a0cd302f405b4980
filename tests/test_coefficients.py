"""Model coefficients: defaults, re-read semantics and validation."""

import math

import pytest

from sst_lowre.config import (
    COEFFS_DICT_NAME,
    ClosureParams,
    CoefficientSet,
    ConfigurationError,
    parse_switch,
)


def test_defaults_from_empty_read():
    coeffs, changed = CoefficientSet().read({})
    assert not changed

    assert coeffs.betaStar == pytest.approx(0.09)
    assert coeffs.beta1 == pytest.approx(0.075)
    assert coeffs.beta2 == pytest.approx(0.0828)
    assert coeffs.gamma1 == pytest.approx(0.5532, abs=1e-4)
    assert coeffs.gamma2 == pytest.approx(0.4403, abs=1e-4)
    assert coeffs.a1 == pytest.approx(0.31)
    assert coeffs.b1 == pytest.approx(1.0)
    assert coeffs.c1 == pytest.approx(10.0)
    assert coeffs.F3 is False
    assert coeffs.alphaZero == pytest.approx(0.024)

    same, changed = coeffs.read(None)
    assert same is coeffs
    assert not changed


def test_read_overrides_only_present_keys():
    base = CoefficientSet()
    new, changed = base.read({"beta1": 0.08, "unrelated": "ignored"})
    assert changed
    assert new.beta1 == pytest.approx(0.08)
    assert new.beta2 == base.beta2
    # Original is immutable
    assert base.beta1 == pytest.approx(0.075)

    again, changed = new.read({"beta1": 0.08})
    assert not changed
    assert again == new


def test_read_from_sub_dictionary():
    new, changed = CoefficientSet().read({COEFFS_DICT_NAME: {"a1": "0.3", "F3": "on"}})
    assert changed
    assert new.a1 == pytest.approx(0.3)
    assert new.F3 is True


@pytest.mark.parametrize(
    "config",
    [
        {"beta1": -0.075},
        {"a1": 0.0},
        {"c1": "ten"},
        {"kappa": float("nan")},
        {"b1": True},
        {"F3": "maybe"},
        {COEFFS_DICT_NAME: [1, 2]},
    ],
)
def test_invalid_values_raise_and_keep_previous(config):
    base = CoefficientSet()
    with pytest.raises(ConfigurationError):
        base.read(config)
    assert base == CoefficientSet()


def test_invalid_value_aborts_whole_read():
    base = CoefficientSet()
    with pytest.raises(ConfigurationError, match="sigmaK1"):
        base.read({"beta1": 0.08, "sigmaK1": -1.0})
    assert base.beta1 == pytest.approx(0.075)


def test_alpha_zero_may_be_zero():
    new, changed = CoefficientSet().read({"alphaZero": 0})
    assert changed
    assert new.alphaZero == 0.0


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)


@pytest.mark.parametrize(
    "word, expected",
    [("yes", True), ("On", True), ("true", True), ("no", False), ("OFF", False), ("none", False), (False, False)],
)
def test_parse_switch(word, expected):
    assert parse_switch(word) is expected


def test_format_coeffs_block():
    text = CoefficientSet().format_coeffs()
    lines = text.splitlines()
    assert lines[0] == "kOmegaSSTLowReCoeffs"
    assert lines[1] == "{"
    assert lines[-1] == "}"
    assert any(line.split() == ["F3", "no;"] for line in lines)
    assert len(lines) == len(CoefficientSet.keys()) + 3


def test_as_dict_round_keys():
    d = CoefficientSet().as_dict()
    assert tuple(d) == CoefficientSet.keys()
    assert all(math.isfinite(v) for k, v in d.items() if k != "F3")


def test_closure_params_validation():
    ClosureParams()
    with pytest.raises(ConfigurationError):
        ClosureParams(k_min=0.0)
    with pytest.raises(ConfigurationError):
        ClosureParams(omega_min=-1.0)
    with pytest.raises(ConfigurationError):
        ClosureParams(under_relax=1.5)
