"""
Sample generators for the distributions a formula can declare.

Every generator takes the sample count explicitly and returns a float64
numpy array sorted ascending. Pass a numpy Generator for reproducible draws;
without one a fresh default generator is used.
"""
import numpy as np

from .errors import ArgumentRangeError

# z-score bounding the central 90% of a standard normal
Z_90 = 1.645


def _rng(rng):
    return rng if rng is not None else np.random.default_rng()


def pert_samples(minimum, likely, maximum, sample_count, rng=None, lambda_=4.0):
    """
    PERT estimate approximated by a triangular distribution (inverse CDF).

    lambda_ is accepted for signature compatibility with pert(min, likely,
    max, lambda) but the triangular approximation does not use it.
    """
    if not (minimum <= likely <= maximum):
        raise ArgumentRangeError(
            f"PERT requires min <= likely <= max, got min={minimum}, "
            f"likely={likely}, max={maximum}")
    if minimum == maximum:
        return np.full(sample_count, float(minimum))

    span = maximum - minimum
    split = (likely - minimum) / span
    u = _rng(rng).random(sample_count)
    with np.errstate(invalid='ignore'):
        lower = minimum + np.sqrt(u * span * (likely - minimum))
        upper = maximum - np.sqrt((1.0 - u) * span * (maximum - likely))
    samples = np.where(u < split, lower, upper)
    samples.sort()
    return samples


def normal_samples_from_ci(lower, upper, sample_count, rng=None):
    """Normal distribution whose 5th and 95th percentiles are lower and upper."""
    mean = (lower + upper) / 2.0
    std_dev = (upper - mean) / Z_90
    samples = mean + std_dev * _rng(rng).standard_normal(sample_count)
    samples.sort()
    return samples


def resample(data, sample_count, rng=None):
    """
    Bring an inline data array to sample_count values.

    An array that already has the right length is only sorted; otherwise values
    are drawn uniformly with replacement. Empty input stays empty.
    """
    data = np.asarray(data, dtype=float)
    if data.size == 0:
        return np.array([], dtype=float)
    if data.size == sample_count:
        return np.sort(data)
    samples = _rng(rng).choice(data, size=sample_count, replace=True)
    samples.sort()
    return samples
