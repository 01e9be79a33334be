"""Summary statistics and histogram bins for sample arrays."""
from collections import namedtuple

import numpy as np

from .config import histogram_bin_count

ConfidenceInterval = namedtuple("ConfidenceInterval", ["lower", "upper"])
Statistics = namedtuple("Statistics", ["mean", "ci"])
HistogramBin = namedtuple("HistogramBin", ["x0", "x1", "frequency"])

EMPTY_CI = ConfidenceInterval(None, None)


def calculate_stats(samples):
    """
    Mean and 90% confidence interval of ascending-sorted samples.

    The interval runs from the sample at floor(0.05 * n) to the one at
    ceil(0.95 * n) - 1. Empty input gives None everywhere.
    """
    n = len(samples)
    if n == 0:
        return Statistics(None, EMPTY_CI)
    samples = np.asarray(samples, dtype=float)
    lower_index = min(max(int(np.floor(0.05 * n)), 0), n - 1)
    upper_index = min(max(int(np.ceil(0.95 * n)) - 1, 0), n - 1)
    return Statistics(
        float(np.mean(samples)),
        ConfidenceInterval(float(samples[lower_index]), float(samples[upper_index])),
    )


def histogram(samples, bin_count=None):
    """
    Bin samples into equal-width bins between their minimum and maximum.

    bin_count defaults to the Terrell-Scott count for len(samples). When every
    sample is equal a single [min, max] bin holds all of them. NaN and infinite
    samples are left out.
    """
    samples = np.sort(np.asarray(samples, dtype=float))
    samples = samples[np.isfinite(samples)]
    n = samples.size
    if n == 0:
        return []
    low = float(samples[0])
    high = float(samples[-1])
    if low == high:
        return [HistogramBin(low, high, n)]

    if bin_count is None:
        bin_count = histogram_bin_count(n)
    width = (high - low) / bin_count
    indices = np.floor((samples - low) / width).astype(int)
    # the maximum sits exactly on the upper edge of the last bin
    indices = np.clip(indices, 0, bin_count - 1)
    counts = np.bincount(indices, minlength=bin_count)
    return [
        HistogramBin(low + i * width, low + (i + 1) * width, int(counts[i]))
        for i in range(bin_count)
    ]
