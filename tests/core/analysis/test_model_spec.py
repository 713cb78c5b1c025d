import numpy as np
import pytest

from Epochipy.core.analysis.model_spec import INTERCEPT_COLUMN, ModelSpec, Term, design_matrix
from Epochipy.shared.error_handling import AnalysisError

LEVELS = ["standard", "deviant", "novel"]


def test_default_formula():
    assert ModelSpec().formula == "amplitude ~ 1 + condition + (1 + condition | time)"


def test_reference_level():
    assert ModelSpec().reference_level(LEVELS) == "standard"
    assert ModelSpec(reference="novel").reference_level(LEVELS) == "novel"
    with pytest.raises(AnalysisError):
        ModelSpec(reference="oddball").reference_level(LEVELS)


def test_condition_columns():
    assert ModelSpec().condition_columns(LEVELS) == ["condition[deviant]", "condition[novel]"]
    assert ModelSpec(reference="deviant").condition_columns(LEVELS) == ["condition[standard]", "condition[novel]"]


def test_design_matrix_treatment_coding():
    spec = ModelSpec()
    X = design_matrix(spec, ["standard", "deviant", "novel", "deviant"], LEVELS, spec.fixed)
    assert list(X.columns) == [INTERCEPT_COLUMN, "condition[deviant]", "condition[novel]"]
    np.testing.assert_array_equal(X.to_numpy(), [
        [1, 0, 0],
        [1, 1, 0],
        [1, 0, 1],
        [1, 1, 0],
    ])


def test_design_matrix_intercept_only():
    spec = ModelSpec(random=(Term.INTERCEPT,))
    Z = design_matrix(spec, ["standard", "deviant"], LEVELS[:2], spec.random)
    assert list(Z.columns) == [INTERCEPT_COLUMN]
    assert spec.formula.endswith("(1 | time)")


def test_design_matrix_unknown_level():
    spec = ModelSpec()
    with pytest.raises(AnalysisError):
        design_matrix(spec, ["standard", "oddball"], LEVELS, spec.fixed)


def test_empty_terms_rejected():
    with pytest.raises(AnalysisError):
        ModelSpec(fixed=())
    with pytest.raises(AnalysisError):
        ModelSpec(random=())
