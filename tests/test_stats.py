import pytest

from probcells.config import SimulationConfig, histogram_bin_count
from probcells.errors import ConfigurationError
from probcells.stats import calculate_stats, histogram


def test_stats_of_empty_samples():
    stats = calculate_stats([])
    assert stats.mean is None
    assert stats.ci.lower is None and stats.ci.upper is None


def test_stats_indices():
    samples = [float(i) for i in range(100)]
    stats = calculate_stats(samples)
    assert stats.mean == 49.5
    assert stats.ci.lower == 5.0   # floor(0.05 * 100)
    assert stats.ci.upper == 94.0  # ceil(0.95 * 100) - 1


def test_stats_single_sample():
    stats = calculate_stats([7.0])
    assert stats.mean == 7.0
    assert stats.ci == (7.0, 7.0)


@pytest.mark.parametrize("count, bins", [(0, 1), (1, 1), (4, 2), (500, 10), (5000, 22)])
def test_terrell_scott_bin_count(count, bins):
    assert histogram_bin_count(count) == bins


def test_histogram_all_equal():
    assert histogram([3.0] * 10) == [(3.0, 3.0, 10)]


def test_histogram_empty():
    assert histogram([]) == []


def test_histogram_counts_and_max_in_last_bin():
    bins = histogram([0.0, 1.0, 2.0, 3.0, 4.0], bin_count=2)
    assert [b.frequency for b in bins] == [2, 3]
    assert bins[0].x0 == 0.0
    assert bins[-1].x1 == 4.0


def test_histogram_total_frequency():
    samples = [float(i % 17) for i in range(1000)]
    bins = histogram(samples)
    assert len(bins) == histogram_bin_count(1000)
    assert sum(b.frequency for b in bins) == 1000


def test_config_caches_bin_count_until_sample_count_changes():
    config = SimulationConfig(sample_count=500)
    assert config.histogram_bin_count == 10
    config.update_sample_count(5000)
    assert config.histogram_bin_count == 22


def test_config_notifies_listeners():
    config = SimulationConfig(sample_count=100)
    calls = []
    config.add_listener(lambda old, new: calls.append((old, new)))
    assert config.update_sample_count(200) is True
    assert config.update_sample_count(200) is False
    assert calls == [(100, 200)]


@pytest.mark.parametrize("value", [0, -5, 2.5, "100", True])
def test_config_rejects_bad_sample_count(value):
    with pytest.raises(ConfigurationError):
        SimulationConfig(sample_count=value)


def test_generator_for_is_reproducible():
    config = SimulationConfig(seed=99)
    first = config.generator_for("a", "pert(1,2,3)").random(5)
    second = config.generator_for("a", "pert(1,2,3)").random(5)
    other = config.generator_for("b", "pert(1,2,3)").random(5)
    assert first.tolist() == second.tolist()
    assert first.tolist() != other.tolist()
