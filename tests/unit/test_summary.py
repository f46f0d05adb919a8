"""
Unit tests for observation statistics.
"""

from obsim.observations.summary import get_observation_statistics, print_observation_summary
from obsim.observations.types import LinkEndRole, LinkEnds, ObservableType, ObservationBatch


STATION1 = LinkEnds(transmitter=("Earth", "Station1"), receiver="Spacecraft")
STATION2 = LinkEnds(transmitter=("Earth", "Station2"), receiver="Spacecraft")


class TestObservationStatistics:
    """Test statistics of simulated observation sets."""

    def setup_method(self):
        # Position observable with a reduced-size model on the second station
        self.observations = {
            ObservableType.POSITION_OBSERVABLE: {
                STATION1: ObservationBatch([1.0, 2.0, 3.0], [0.0], LinkEndRole.RECEIVER, 3),
                STATION2: ObservationBatch([1.0, 2.0, 3.0, 4.0], [3600.0, 7200.0], LinkEndRole.RECEIVER, 2),
            },
        }

    def test_sizes_reported_per_batch(self):
        """Test that observation sizes come from the simulated batches."""
        stats = get_observation_statistics(self.observations)
        position = stats['per_observable']['position_observable']
        assert position['observation_sizes'] == [2, 3]
        assert position['observations'] == 3
        assert position['link_end_sets'] == 2

    def test_time_coverage(self):
        """Test time span covered by all batches."""
        stats = get_observation_statistics(self.observations)
        assert stats['time_coverage']['min_time'] == 0.0
        assert stats['time_coverage']['max_time'] == 7200.0
        assert stats['time_coverage']['total_hours'] == 2.0

    def test_empty_observations(self):
        """Test statistics of an empty result map."""
        stats = get_observation_statistics({})
        assert stats['total_observations'] == 0
        assert stats['time_coverage']['total_hours'] == 0.0

    def test_print_summary(self, capsys):
        """Test printed summary lists every size of an observable."""
        print_observation_summary(self.observations)
        output = capsys.readouterr().out
        assert "position_observable: 3 over 2 link end sets (size 2, 3)" in output
