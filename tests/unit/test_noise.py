"""
Unit tests for noise generation and injection.

This module tests:
- Noise generator implementations
- Normalization of the noise configuration shapes
- Noise additivity, scalar broadcast and dimension checks
"""

import pytest
import numpy as np

from obsim.observations.errors import (
    InconsistentBatchShape,
    MissingNoiseGenerator,
    NoiseDimensionMismatch,
    UnsupportedObservationSize,
)
from obsim.observations.models import FunctionObservationModel, ObservationSimulator
from obsim.observations.noise import (
    ConstantNoiseGenerator,
    FunctionNoiseGenerator,
    GaussianNoiseGenerator,
    IndependentScalarNoiseGenerator,
    NoiseSettings,
    ScalarNoiseGenerator,
    TabulatedNoiseGenerator,
    add_noise_to_observation_batch,
    add_noise_to_observations,
    as_noise_generator,
    simulate_observations_with_noise,
)
from obsim.observations.simulation import simulate_observations
from obsim.observations.types import LinkEndRole, LinkEnds, ObservableType, ObservationBatch


STATION1 = LinkEnds(transmitter=("Earth", "Station1"), receiver="Spacecraft")
STATION2 = LinkEnds(transmitter=("Earth", "Station2"), receiver="Spacecraft")


class TestNoiseGenerators:
    """Test noise generator implementations."""

    def test_function_generator(self):
        """Test function generator."""
        generator = FunctionNoiseGenerator(lambda t: [t, 2 * t])
        np.testing.assert_array_equal(generator.evaluate(1.5), [1.5, 3.0])

    def test_scalar_generator_broadcasts_one_sample(self):
        """Test scalar generator broadcasts one sample."""
        samples = iter([1.0, 2.0, 3.0])
        generator = ScalarNoiseGenerator(lambda t: next(samples), observation_size=3)
        np.testing.assert_array_equal(generator.evaluate(0.0), [1.0, 1.0, 1.0])
        np.testing.assert_array_equal(generator.evaluate(1.0), [2.0, 2.0, 2.0])

    def test_independent_scalar_generator_samples_per_component(self):
        """Test independent scalar generator samples per component."""
        samples = iter([1.0, 2.0, 3.0])
        generator = IndependentScalarNoiseGenerator(lambda t: next(samples), observation_size=3)
        np.testing.assert_array_equal(generator.evaluate(0.0), [1.0, 2.0, 3.0])

    def test_constant_generator(self):
        """Test constant generator."""
        np.testing.assert_array_equal(ConstantNoiseGenerator(0.5, 2).evaluate(10.0), [0.5, 0.5])
        np.testing.assert_array_equal(ConstantNoiseGenerator([0.1, 0.2]).evaluate(10.0), [0.1, 0.2])

    def test_gaussian_generator_uses_supplied_rng(self):
        """Test gaussian generator uses supplied rng."""
        first = GaussianNoiseGenerator(1.0, 3, np.random.default_rng(42))
        second = GaussianNoiseGenerator(1.0, 3, np.random.default_rng(42))
        np.testing.assert_array_equal(first.evaluate(0.0), second.evaluate(0.0))
        assert first.evaluate(1.0).shape == (3,)

    def test_gaussian_statistics(self):
        """Test gaussian statistics."""
        generator = GaussianNoiseGenerator(2.0, 1, np.random.default_rng(0), mean=5.0)
        samples = np.concatenate([generator.evaluate(float(t)) for t in range(5000)])
        assert abs(np.mean(samples) - 5.0) < 0.2
        assert abs(np.std(samples) - 2.0) < 0.2

    def test_tabulated_generator_replays(self):
        """Test replay of recorded noise samples."""
        generator = TabulatedNoiseGenerator({0.0: [0.1], 10.0: [0.2]})
        np.testing.assert_array_equal(generator.evaluate(10.0), [0.2])
        with pytest.raises(ValueError):
            generator.evaluate(5.0)

    def test_as_noise_generator(self):
        """Test wrapping of plain callables into noise generators."""
        assert as_noise_generator(None, 1) is None
        generator = ConstantNoiseGenerator(1.0)
        assert as_noise_generator(generator, 1) is generator
        assert isinstance(as_noise_generator(lambda t: t, 1), FunctionNoiseGenerator)
        assert isinstance(as_noise_generator(lambda t: t, 2, scalar=True), ScalarNoiseGenerator)
        assert as_noise_generator(generator, 3, scalar=True) is generator
        with pytest.raises(TypeError):
            as_noise_generator(3.0, 1)


class TestNoiseSettings:
    """Test the canonical noise configuration and its adapters."""

    def setup_method(self):
        self.link_ends_per_observable = {
            ObservableType.ONE_WAY_RANGE: [STATION1, STATION2],
            ObservableType.ANGULAR_POSITION: [STATION1],
        }

    def test_per_link_ends(self):
        """Test noise functions per observable and link end set."""
        settings = NoiseSettings.per_link_ends({
            ObservableType.ONE_WAY_RANGE: {STATION1: lambda t: [1.0], STATION2: lambda t: [2.0]}})
        np.testing.assert_array_equal(
            settings.get_generator(ObservableType.ONE_WAY_RANGE, STATION2).evaluate(0.0), [2.0])
        assert len(settings) == 2

    def test_per_observable_shared_by_link_ends(self):
        """Test that per-observable noise is shared by its link ends."""
        settings = NoiseSettings.per_observable(
            {ObservableType.ONE_WAY_RANGE: lambda t: [1.0],
             ObservableType.ANGULAR_POSITION: lambda t: [1.0, 2.0]},
            self.link_ends_per_observable)
        assert (settings.get_generator(ObservableType.ONE_WAY_RANGE, STATION1)
                is settings.get_generator(ObservableType.ONE_WAY_RANGE, STATION2))
        assert len(settings) == 3

    def test_per_observable_missing_observable(self):
        """Test an observable without a noise function."""
        settings = NoiseSettings.per_observable(
            {ObservableType.ONE_WAY_RANGE: lambda t: [1.0]}, self.link_ends_per_observable)
        with pytest.raises(MissingNoiseGenerator):
            settings.get_generator(ObservableType.ANGULAR_POSITION, STATION1)
        with pytest.raises(MissingNoiseGenerator):
            settings.validate(self.link_ends_per_observable)

    def test_none_counts_as_missing(self):
        """Test that a None noise function counts as missing."""
        settings = NoiseSettings.per_observable(
            {ObservableType.ONE_WAY_RANGE: lambda t: [1.0], ObservableType.ANGULAR_POSITION: None},
            self.link_ends_per_observable)
        assert (ObservableType.ANGULAR_POSITION, STATION1) not in settings

    def test_shared_scalar(self):
        """Test one scalar noise function shared by all observables."""
        settings = NoiseSettings.shared(lambda t: 0.5, self.link_ends_per_observable, scalar=True)
        settings.validate(self.link_ends_per_observable)
        np.testing.assert_array_equal(
            settings.get_generator(ObservableType.ANGULAR_POSITION, STATION1).evaluate(0.0), [0.5, 0.5])
        np.testing.assert_array_equal(
            settings.get_generator(ObservableType.ONE_WAY_RANGE, STATION2).evaluate(0.0), [0.5])

    def test_from_config_detects_shape(self):
        """Test detection of each noise configuration shape."""
        shared = NoiseSettings.from_config(lambda t: [0.0], self.link_ends_per_observable)
        assert len(shared) == 3

        per_observable = NoiseSettings.from_config(
            {ObservableType.ONE_WAY_RANGE: lambda t: [0.0]}, self.link_ends_per_observable)
        assert len(per_observable) == 2

        per_link_ends = NoiseSettings.from_config(
            {ObservableType.ONE_WAY_RANGE: {STATION1: lambda t: [0.0]}}, self.link_ends_per_observable)
        assert len(per_link_ends) == 1

        assert NoiseSettings.from_config(per_link_ends, self.link_ends_per_observable) is per_link_ends

    def test_from_config_rejects_unknown(self):
        """Test that unsupported noise configurations are rejected."""
        with pytest.raises(TypeError):
            NoiseSettings.from_config(1.0, self.link_ends_per_observable)

    def test_from_config_rejects_mixed_shapes(self):
        """Test that per link end maps and per observable functions cannot be mixed."""
        noise = {
            ObservableType.ONE_WAY_RANGE: {STATION1: lambda t: [0.0]},
            ObservableType.ANGULAR_POSITION: lambda t: [0.0, 0.0],
        }
        with pytest.raises(TypeError):
            NoiseSettings.from_config(noise, self.link_ends_per_observable)

    def test_from_config_per_link_ends_with_none_entry(self):
        """Test that an observable mapped to None gets no generators."""
        noise = {
            ObservableType.ONE_WAY_RANGE: {STATION1: lambda t: [0.0]},
            ObservableType.ANGULAR_POSITION: None,
        }
        settings = NoiseSettings.from_config(noise, self.link_ends_per_observable)
        assert len(settings) == 1
        assert (ObservableType.ANGULAR_POSITION, STATION1) not in settings


class TestAddNoise:
    """Test noise injection into simulated observations."""

    def setup_method(self):
        self.batch = ObservationBatch(
            observations=[1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
            times=[0.0, 10.0],
            reference_link_end=LinkEndRole.RECEIVER,
            observation_size=3
        )

    def test_noise_added_per_epoch(self):
        """Test that noise is evaluated and added per epoch."""
        generator = FunctionNoiseGenerator(lambda t: [t, 0.0, -t])
        noisy = add_noise_to_observation_batch(self.batch, generator, ObservableType.POSITION_OBSERVABLE)

        np.testing.assert_array_equal(noisy.observations, [1.0, 2.0, 3.0, 14.0, 5.0, -4.0])
        np.testing.assert_array_equal(noisy.times, self.batch.times)
        assert noisy.reference_link_end is LinkEndRole.RECEIVER

    def test_input_not_modified(self):
        """Test that the noise-free batch is not modified."""
        add_noise_to_observation_batch(
            self.batch, ConstantNoiseGenerator(1.0, 3), ObservableType.POSITION_OBSERVABLE)
        np.testing.assert_array_equal(self.batch.observations, [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])

    def test_noise_dimension_mismatch(self):
        """Test noise dimension mismatch."""
        generator = FunctionNoiseGenerator(lambda t: [0.1, 0.2])
        with pytest.raises(NoiseDimensionMismatch):
            add_noise_to_observation_batch(self.batch, generator, ObservableType.POSITION_OBSERVABLE)

    def test_later_noise_sample_of_wrong_size(self):
        """Test that a wrong-size noise sample after the first epoch raises a package error."""
        generator = FunctionNoiseGenerator(lambda t: [0.1, 0.2, 0.3] if t == 0.0 else [0.1, 0.2])
        with pytest.raises(NoiseDimensionMismatch) as excinfo:
            add_noise_to_observation_batch(self.batch, generator, ObservableType.POSITION_OBSERVABLE)
        assert excinfo.value.observable_type is ObservableType.POSITION_OBSERVABLE

    def test_inconsistent_batch_shape(self):
        """Test inconsistent batch shape."""
        # Batch of size 3 observations interpreted as a range observable
        with pytest.raises(InconsistentBatchShape):
            add_noise_to_observation_batch(
                self.batch, ConstantNoiseGenerator(1.0, 1), ObservableType.ONE_WAY_RANGE)

    def test_empty_batch(self):
        """Test empty batch."""
        batch = ObservationBatch([], [], LinkEndRole.RECEIVER, observation_size=3)
        generator = FunctionNoiseGenerator(lambda t: [0.1])
        noisy = add_noise_to_observation_batch(batch, generator, ObservableType.POSITION_OBSERVABLE)
        assert len(noisy) == 0

    def test_missing_generator(self):
        """Test missing generator."""
        observations = {ObservableType.POSITION_OBSERVABLE: {STATION1: self.batch}}
        with pytest.raises(MissingNoiseGenerator):
            add_noise_to_observations(observations, NoiseSettings())


class TestSimulateObservationsWithNoise:
    """Test simulation of noisy observations."""

    def setup_method(self):
        self.simulators = {
            ObservableType.ONE_WAY_RANGE: ObservationSimulator.from_functions(
                ObservableType.ONE_WAY_RANGE,
                {STATION1: lambda t: 2.0 * t, STATION2: lambda t: t}),
            ObservableType.POSITION_OBSERVABLE: ObservationSimulator.from_functions(
                ObservableType.POSITION_OBSERVABLE, {STATION1: lambda t: [t, 2 * t, 3 * t]}),
        }
        self.times = {
            ObservableType.ONE_WAY_RANGE: {
                STATION1: ([0.0, 10.0, 20.0], LinkEndRole.RECEIVER),
                STATION2: ([1.0], LinkEndRole.RECEIVER),
            },
            ObservableType.POSITION_OBSERVABLE: {
                STATION1: ([1.0, 2.0], LinkEndRole.RECEIVER),
            },
        }

    def test_range_example(self):
        """Test range example."""
        times = {ObservableType.ONE_WAY_RANGE: {STATION1: ([0.0, 10.0, 20.0], LinkEndRole.RECEIVER)}}
        noisy = simulate_observations_with_noise(times, self.simulators, lambda t: 1.0, scalar_noise=True)
        np.testing.assert_array_equal(
            noisy[ObservableType.ONE_WAY_RANGE][STATION1].observations, [1.0, 21.0, 41.0])

    def test_noise_additivity(self):
        """Test that noisy minus noise-free equals the generated noise."""
        def noise_function(t):
            return np.array([0.01 * t])

        noise_free = simulate_observations(self.times, self.simulators)
        noisy = simulate_observations_with_noise(
            self.times, self.simulators,
            {ObservableType.ONE_WAY_RANGE: noise_function,
             ObservableType.POSITION_OBSERVABLE: lambda t: [1.0, 2.0, 3.0]})

        for observable_type, batches in noise_free.items():
            for link_ends, batch in batches.items():
                size = observable_type.size
                noisy_batch = noisy[observable_type][link_ends]
                expected = batch.as_matrix() + np.array([
                    noise_function(t) if size == 1 else [1.0, 2.0, 3.0] for t in batch.times])
                np.testing.assert_allclose(noisy_batch.as_matrix(), expected)
                np.testing.assert_array_equal(noisy_batch.times, batch.times)

    def test_scalar_broadcast(self):
        """Test that a scalar noise value is added to every component."""
        c = 0.25
        noise_free = simulate_observations(self.times, self.simulators)
        noisy = simulate_observations_with_noise(self.times, self.simulators, lambda t: c, scalar_noise=True)

        position = noisy[ObservableType.POSITION_OBSERVABLE][STATION1]
        expected = noise_free[ObservableType.POSITION_OBSERVABLE][STATION1].observations + c
        np.testing.assert_allclose(position.observations, expected)

    def test_scalar_noise_keeps_vector_generators(self):
        """Test that scalar_noise only wraps plain functions, not noise generators."""
        noise_free = simulate_observations(self.times, self.simulators)
        noisy = simulate_observations_with_noise(
            self.times, self.simulators,
            {ObservableType.POSITION_OBSERVABLE: ConstantNoiseGenerator([0.5, 1.0, 1.5], 3),
             ObservableType.ONE_WAY_RANGE: lambda t: 0.5},
            scalar_noise=True)

        position_noise = (noisy[ObservableType.POSITION_OBSERVABLE][STATION1].as_matrix()
                          - noise_free[ObservableType.POSITION_OBSERVABLE][STATION1].as_matrix())
        np.testing.assert_allclose(position_noise, [[0.5, 1.0, 1.5], [0.5, 1.0, 1.5]])

        range_noise = (noisy[ObservableType.ONE_WAY_RANGE][STATION1].observations
                       - noise_free[ObservableType.ONE_WAY_RANGE][STATION1].observations)
        np.testing.assert_allclose(range_noise, 0.5)

    def test_per_link_ends_noise(self):
        """Test noise configured per link end set."""
        noise = {
            ObservableType.ONE_WAY_RANGE: {STATION1: lambda t: [1.0], STATION2: lambda t: [-1.0]},
            ObservableType.POSITION_OBSERVABLE: {STATION1: ConstantNoiseGenerator(0.0, 3)},
        }
        noisy = simulate_observations_with_noise(self.times, self.simulators, noise)
        np.testing.assert_array_equal(
            noisy[ObservableType.ONE_WAY_RANGE][STATION2].observations, [0.0])

    def test_dimension_mismatch(self):
        """Test noise of the wrong size for an observable."""
        noise = {
            ObservableType.ONE_WAY_RANGE: lambda t: [0.0],
            ObservableType.POSITION_OBSERVABLE: lambda t: [0.0, 0.0],
        }
        with pytest.raises(NoiseDimensionMismatch):
            simulate_observations_with_noise(self.times, self.simulators, noise)

    def test_missing_noise_fails_before_simulation(self):
        """Test that missing noise fails before any model is evaluated."""
        calls = []

        def recording_model(t):
            calls.append(t)
            return t

        simulators = {ObservableType.ONE_WAY_RANGE: ObservationSimulator.from_functions(
            ObservableType.ONE_WAY_RANGE, {STATION1: recording_model})}
        times = {ObservableType.ONE_WAY_RANGE: {STATION1: ([0.0, 1.0], LinkEndRole.RECEIVER)}}

        with pytest.raises(MissingNoiseGenerator):
            simulate_observations_with_noise(times, simulators, {ObservableType.POSITION_OBSERVABLE: lambda t: [0.0]})
        assert calls == []

    def test_unsupported_size_returns_nothing(self):
        """Test that an unsupported size fails without results."""
        simulators = {ObservableType.POSITION_OBSERVABLE: ObservationSimulator(
            ObservableType.POSITION_OBSERVABLE,
            {STATION1: FunctionObservationModel(lambda t: [t] * 4, observation_size=4)})}
        times = {ObservableType.POSITION_OBSERVABLE: {STATION1: ([0.0], LinkEndRole.RECEIVER)}}

        with pytest.raises(UnsupportedObservationSize):
            simulate_observations_with_noise(times, simulators, lambda t: 0.0, scalar_noise=True)

    def test_noise_free_input_not_mutated(self):
        """Test that noise-free results are not mutated."""
        noise_free = simulate_observations(self.times, self.simulators)
        before = {observable_type: {link_ends: batch.observations.copy()
                                    for link_ends, batch in batches.items()}
                  for observable_type, batches in noise_free.items()}

        add_noise_to_observations(
            noise_free, NoiseSettings.shared(lambda t: 5.0, {
                observable_type: list(batches) for observable_type, batches in noise_free.items()},
                scalar=True))

        for observable_type, batches in noise_free.items():
            for link_ends, batch in batches.items():
                np.testing.assert_array_equal(batch.observations, before[observable_type][link_ends])

    def test_seeded_gaussian_noise_is_reproducible(self):
        """Test that seeded Gaussian noise is reproducible."""
        def run(seed):
            rng = np.random.default_rng(seed)
            noise = {
                ObservableType.ONE_WAY_RANGE: GaussianNoiseGenerator(1.0, 1, rng),
                ObservableType.POSITION_OBSERVABLE: GaussianNoiseGenerator(1.0, 3, rng),
            }
            return simulate_observations_with_noise(self.times, self.simulators, noise)

        assert run(7) == run(7)
        assert run(7) != run(8)
