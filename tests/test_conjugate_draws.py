"""Tests for the random-draw primitives."""

import numpy as np
import pytest

from conjugate_draws import (
    check_finite,
    check_positive,
    draw_gamma,
    draw_geometric,
    draw_inverse_gamma,
    draw_normal,
    normal_full_conditional,
)
from sampler_errors import NumericalSamplingError, SamplerConfigError

N_DRAWS = 200_000


class TestMoments:
    """Sample moments of each primitive match the parameterisation."""

    def test_normal_uses_variance(self) -> None:
        rng = np.random.default_rng(0)
        x = draw_normal(rng, np.full(N_DRAWS, 3.0), 4.0)
        assert abs(x.mean() - 3.0) < 0.03
        assert abs(x.var() - 4.0) < 0.08

    def test_gamma_uses_rate(self) -> None:
        rng = np.random.default_rng(1)
        x = draw_gamma(rng, np.full(N_DRAWS, 3.0), 2.0)
        assert abs(x.mean() - 1.5) < 0.01
        assert abs(x.var() - 0.75) < 0.02

    def test_inverse_gamma(self) -> None:
        """InverseGamma(5, 8): mean 8/4 = 2, variance 64/(16*3)."""
        rng = np.random.default_rng(2)
        x = draw_inverse_gamma(rng, np.full(N_DRAWS, 5.0), 8.0)
        assert abs(x.mean() - 2.0) < 0.02
        assert abs(x.var() - 64 / 48) < 0.1
        assert np.all(x > 0)

    def test_geometric_support_and_mean(self) -> None:
        rng = np.random.default_rng(3)
        x = np.array([draw_geometric(rng, 0.25) for _ in range(20_000)])
        assert x.min() >= 1
        assert abs(x.mean() - 4.0) < 0.1


def test_inverse_gamma_is_reciprocal_of_gamma_with_rate_equal_scale() -> None:
    a = draw_inverse_gamma(np.random.default_rng(7), 2.5, 3.0)
    b = draw_gamma(np.random.default_rng(7), 2.5, 3.0)
    assert a == 1.0 / b
    assert isinstance(a, float)


def test_same_generator_state_gives_same_draws() -> None:
    a = draw_normal(np.random.default_rng(11), 0.0, 1.0)
    b = draw_normal(np.random.default_rng(11), 0.0, 1.0)
    assert a == b


def test_infinite_rate_yields_infinite_inverse_gamma_not_an_exception() -> None:
    value = draw_inverse_gamma(np.random.default_rng(0), 2.0, np.inf)
    assert np.isinf(value)
    with pytest.raises(NumericalSamplingError):
        check_finite("sigma2", value)


@pytest.mark.parametrize(
    "call",
    (
        lambda rng: draw_normal(rng, 0.0, 0.0),
        lambda rng: draw_normal(rng, 0.0, np.array([1.0, -1.0])),
        lambda rng: draw_gamma(rng, -1.0, 1.0),
        lambda rng: draw_gamma(rng, 1.0, 0.0),
        lambda rng: draw_inverse_gamma(rng, 0.0, 1.0),
        lambda rng: draw_geometric(rng, 0.0),
        lambda rng: draw_geometric(rng, 1.5),
    ),
)
def test_invalid_arguments_are_configuration_errors(call) -> None:
    with pytest.raises(SamplerConfigError):
        call(np.random.default_rng(0))


class TestNormalFullConditional:
    def test_scalar(self) -> None:
        mean, var = normal_full_conditional(prior_mean=0.0, prior_var=1.0, data_precision=1.0, data_weighted_sum=2.0)
        assert var == pytest.approx(0.5)
        assert mean == pytest.approx(1.0)
        assert isinstance(mean, float)

    def test_vectorised_over_groups(self) -> None:
        """Large samples put the conditional mean close to the data mean."""
        n = np.array([1.0, 1000.0])
        ybar = np.array([10.0, 10.0])
        mean, var = normal_full_conditional(0.0, 1.0, n / 1.0, n * ybar / 1.0)
        np.testing.assert_allclose(var, 1.0 / (1.0 + n))
        assert mean[0] == pytest.approx(5.0)
        assert mean[1] == pytest.approx(10.0 * 1000 / 1001)


class TestChecks:
    def test_finite_passes_value_through(self) -> None:
        assert check_finite("mu", 1.5) == 1.5

    def test_nan_carries_parameter_and_iteration(self) -> None:
        with pytest.raises(NumericalSamplingError) as excinfo:
            check_finite("theta", np.array([1.0, np.nan]), iteration=4)
        assert excinfo.value.parameter == "theta"
        assert excinfo.value.iteration == 4
        assert excinfo.value.partial_trace is None

    def test_positive_rejects_zero(self) -> None:
        with pytest.raises(NumericalSamplingError) as excinfo:
            check_positive("tau2", 0.0, iteration=7)
        assert excinfo.value.reason == "non-positive"
        assert str(excinfo.value).startswith("Non-positive draw for 'tau2' at iteration 7")

    def test_nan_is_reported_as_non_finite(self) -> None:
        with pytest.raises(NumericalSamplingError) as excinfo:
            check_positive("sigma2", float("nan"))
        assert excinfo.value.reason == "non-finite"
        assert str(excinfo.value).startswith("Non-finite draw")

    def test_with_trace_attaches_partial_trace(self) -> None:
        err = NumericalSamplingError("mu", 3, float("inf"))
        trace = object()
        assert err.with_trace(trace) is err
        assert err.partial_trace is trace
        assert err.iteration == 3
