"""Error types raised by the samplers."""


class SamplerError(Exception):
    """Base class for every error raised by this package."""


class SamplerConfigError(SamplerError, ValueError):
    """Invalid observations, priors, starting values or chain length.

    Always raised before the first draw, so no partial result exists.
    """


class NumericalSamplingError(SamplerError, FloatingPointError):
    """A full-conditional draw produced a non-finite value, or a non-positive variance.

    Args:
        parameter: name of the parameter whose draw failed
        iteration: 1-based iteration in which the failure happened
        value: the offending value
        reason: what was wrong with it ("non-finite" or "non-positive")
        partial_trace: frozen trace of every iteration completed before the failure
    """

    def __init__(self, parameter: str, iteration: int, value, reason: str = "non-finite", partial_trace=None):
        self.parameter = parameter
        self.iteration = iteration
        self.value = value
        self.reason = reason
        self.partial_trace = partial_trace
        super().__init__(
            f"{reason.capitalize()} draw for '{parameter}' at iteration {iteration}: {value!r}"
        )

    def with_trace(self, partial_trace) -> "NumericalSamplingError":
        """Attach the trace of the iterations completed before the failure."""
        self.partial_trace = partial_trace
        return self
