import zlib

import numpy as np

from .errors import ConfigurationError

# Defaults carried over from the spreadsheet: 5000 Monte Carlo draws per
# distribution and three decimals when formatting values.
DEFAULT_SAMPLE_COUNT = 5000
DEFAULT_DECIMALS = 3


def histogram_bin_count(sample_count):
    """Terrell-Scott rule: ceil((2 * n) ** (1/3)), never less than one bin."""
    if sample_count <= 1:
        return 1
    return max(1, int(np.ceil(np.cbrt(2 * sample_count))))


class SimulationConfig:
    """
    Process-wide settings shared by every cell of a sheet.

    The sample count is the only mutable value that affects results. Change it
    through update_sample_count() so that the cached histogram bin count is
    invalidated and listeners (the calculation manager) can mark cells stale.
    """

    def __init__(self, sample_count=DEFAULT_SAMPLE_COUNT, seed=None, decimals=DEFAULT_DECIMALS):
        self._sample_count = self._validate_sample_count(sample_count)
        self._bin_count = None
        self._listeners = []
        if decimals < 0:
            raise ConfigurationError(f"decimals must be non-negative, got {decimals}")
        self.decimals = decimals
        if seed is not None and seed < 0:
            raise ConfigurationError(f"seed must be non-negative, got {seed}")
        self.seed = seed
        # Without an explicit seed, draw one entropy value up front so that a
        # session stays reproducible from one recalculation to the next.
        self._entropy = seed if seed is not None else np.random.SeedSequence().entropy

    @staticmethod
    def _validate_sample_count(value):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise ConfigurationError(f"sample count must be an integer, got {value!r}")
        if value <= 0:
            raise ConfigurationError(f"sample count must be positive, got {value}")
        return int(value)

    @property
    def sample_count(self):
        return self._sample_count

    @sample_count.setter
    def sample_count(self, value):
        self.update_sample_count(value)

    def update_sample_count(self, value):
        """Set a new sample count. Returns True if the value actually changed."""
        value = self._validate_sample_count(value)
        if value == self._sample_count:
            return False
        old = self._sample_count
        self._sample_count = value
        self._bin_count = None
        for listener in list(self._listeners):
            listener(old, value)
        return True

    @property
    def histogram_bin_count(self):
        if self._bin_count is None:
            self._bin_count = histogram_bin_count(self._sample_count)
        return self._bin_count

    def add_listener(self, callback):
        """Register callback(old_count, new_count) for sample count changes."""
        self._listeners.append(callback)

    def remove_listener(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def generator_for(self, *keys):
        """
        Return a numpy Generator seeded from the config entropy and the given keys.

        The same keys always give the same stream, which is what keeps repeated
        reevaluation of an unchanged formula from producing fresh samples.
        """
        words = [zlib.crc32(str(key).encode("utf-8")) for key in keys]
        return np.random.default_rng(np.random.SeedSequence([self._entropy, *words]))

    def __repr__(self):
        return (f"SimulationConfig(sample_count={self._sample_count}, "
                f"seed={self.seed}, decimals={self.decimals})")
