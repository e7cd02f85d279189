"""
Tests for the training loop.

Tests cover:
- Shape invariants across iterations
- Loss descent under a small learning rate
- Determinism for a fixed seed
- Zero-iteration identity
- The end-to-end synthetic regression scenario
- Divergence under an over-large learning rate (characterized, not prevented)
"""

import numpy as np
import pytest

from scratchnet.network import NetworkParameters, initialize_parameters
from scratchnet.optimizer import SGD
from scratchnet.training import (
    FitConfig,
    FitResult,
    check_parameters,
    fit,
    prepare_data,
    report_progress,
    train_step,
)
from scratchnet.utils import RegressionDataConfig, is_diverged, make_regression_data


@pytest.fixture
def regression_data():
    """The default scenario: N=100, D=3, Y = 0.2 x0 - 1.3 x1 - 0.5 x2 + noise."""
    return make_regression_data(RegressionDataConfig(seed=0))


class TestFitConfig:
    """Test configuration validation."""

    def test_defaults(self):
        config = FitConfig()

        assert config.hidden_dim == 32
        assert config.learning_rate == 1e-4
        assert config.num_iterations == 200
        assert config.log_every == 10

    @pytest.mark.parametrize(
        "overrides",
        [
            {"hidden_dim": 0},
            {"learning_rate": 0.0},
            {"learning_rate": -1e-3},
            {"num_iterations": -1},
            {"log_every": -5},
        ],
    )
    def test_invalid_values_raise(self, overrides):
        with pytest.raises(ValueError):
            FitConfig(**overrides).validate()


class TestTrainStep:
    """Test a single iteration."""

    def test_returns_loss_before_update(self, regression_data):
        inputs, targets = regression_data
        parameters = initialize_parameters(3, 8, 1, seed=0)
        optimizer = SGD(learning_rate=1e-4)
        optimizer.initialize(parameters.get_parameters())

        first_loss, _ = train_step(parameters, optimizer, inputs, targets)
        second_loss, _ = train_step(parameters, optimizer, inputs, targets)

        assert first_loss != second_loss

    def test_all_four_parameters_move_together(self, regression_data):
        """Each parameter moves by -lr times the same step's gradient."""
        inputs, targets = regression_data
        parameters = initialize_parameters(3, 8, 1, seed=0)
        before = parameters.copy()
        optimizer = SGD(learning_rate=1e-4)
        optimizer.initialize(parameters.get_parameters())

        _, gradients = train_step(parameters, optimizer, inputs, targets)

        for name, grad in gradients.parameter_gradients().items():
            np.testing.assert_allclose(
                parameters.get_parameters()[name],
                before.get_parameters()[name] - 1e-4 * grad,
            )


class TestFit:
    """Test the full training run."""

    def test_shapes_never_change(self, regression_data):
        inputs, targets = regression_data
        config = FitConfig(hidden_dim=16, num_iterations=25)

        result = fit(inputs, targets, config)

        assert result.parameters.shapes() == {
            "w1": (3, 16),
            "b1": (16,),
            "w2": (16, 1),
            "b2": (1,),
        }

    def test_loss_history_has_one_entry_per_iteration(self, regression_data):
        inputs, targets = regression_data

        result = fit(inputs, targets, FitConfig(num_iterations=37))

        assert len(result.loss_history) == 37

    def test_zero_iterations_returns_initial_parameters(self, regression_data):
        inputs, targets = regression_data
        config = FitConfig(num_iterations=0, seed=11)

        result = fit(inputs, targets, config)
        expected = initialize_parameters(3, config.hidden_dim, 1, seed=11)

        for name, value in expected.get_parameters().items():
            np.testing.assert_array_equal(result.parameters.get_parameters()[name], value)
        assert result.loss_history == []
        assert result.initial_loss is None
        assert result.final_loss is None

    def test_deterministic_for_same_seed(self, regression_data):
        inputs, targets = regression_data
        config = FitConfig(num_iterations=50, seed=3)

        first = fit(inputs, targets, config)
        second = fit(inputs, targets, config)

        assert first.loss_history == second.loss_history
        for name, value in first.parameters.get_parameters().items():
            np.testing.assert_array_equal(value, second.parameters.get_parameters()[name])

    def test_different_seeds_differ(self, regression_data):
        inputs, targets = regression_data

        first = fit(inputs, targets, FitConfig(num_iterations=5, seed=1))
        second = fit(inputs, targets, FitConfig(num_iterations=5, seed=2))

        assert first.loss_history != second.loss_history

    def test_loss_decreases_early_with_small_learning_rate(self, regression_data):
        """With a small step the first iterations should not increase the loss."""
        inputs, targets = regression_data
        config = FitConfig(learning_rate=1e-5, num_iterations=20)

        result = fit(inputs, targets, config)
        steps = np.diff(result.loss_history)

        assert np.all(steps <= 1e-9 * result.loss_history[0])

    def test_end_to_end_scenario(self, regression_data):
        """
        D=3, O=1, N=100, H=32, lr=1e-4, T=200: the loss should trend down
        to well under 10% of its starting value.
        """
        inputs, targets = regression_data
        reports = []

        result = fit(
            inputs,
            targets,
            FitConfig(),
            progress_callback=lambda iteration, loss: reports.append((iteration, loss)),
        )

        assert [iteration for iteration, _ in reports] == list(range(10, 201, 10))
        assert result.final_loss < 0.1 * result.initial_loss
        # Downward trend across the reported checkpoints
        first_half = np.mean([loss for _, loss in reports[:10]])
        second_half = np.mean([loss for _, loss in reports[10:]])
        assert second_half < first_half
        assert not is_diverged(result.loss_history)

    def test_uses_given_parameters_in_place(self, regression_data):
        inputs, targets = regression_data
        parameters = initialize_parameters(3, 32, 1, seed=4)
        w1 = parameters.w1

        result = fit(inputs, targets, FitConfig(num_iterations=3), parameters=parameters)

        assert result.parameters is parameters
        assert result.parameters.w1 is w1

    def test_given_parameters_must_match_shapes(self, regression_data):
        inputs, targets = regression_data
        parameters = initialize_parameters(3, 8, 1, seed=0)

        with pytest.raises(ValueError, match="Parameter 'w1'"):
            fit(inputs, targets, FitConfig(hidden_dim=32), parameters=parameters)

    @pytest.mark.parametrize("dtype", [np.int64, np.float32])
    def test_given_parameters_must_be_float64(self, regression_data, dtype):
        """Integer or single-precision parameters are rejected before training."""
        inputs, targets = regression_data
        parameters = NetworkParameters(
            w1=np.ones((3, 32), dtype=dtype),
            b1=np.zeros(32, dtype=dtype),
            w2=np.ones((32, 1), dtype=dtype),
            b2=np.zeros(1, dtype=dtype),
        )
        original_w1 = parameters.w1.copy()

        with pytest.raises(ValueError, match="expected float64"):
            fit(inputs, targets, FitConfig(num_iterations=2), parameters=parameters)

        np.testing.assert_array_equal(parameters.w1, original_w1)

    def test_row_vector_biases_are_accepted(self, regression_data):
        """(1, K) biases train in place through a (K,) view of the same memory."""
        inputs, targets = regression_data
        parameters = initialize_parameters(3, 32, 1, seed=0)
        reference = parameters.copy()
        b1_row = parameters.b1.reshape(1, 32).copy()
        b2_row = parameters.b2.reshape(1, 1).copy()
        parameters.b1 = b1_row
        parameters.b2 = b2_row

        result = fit(inputs, targets, FitConfig(num_iterations=5), parameters=parameters)
        expected = fit(inputs, targets, FitConfig(num_iterations=5), parameters=reference)

        assert result.parameters.b1.shape == (32,)
        assert result.parameters.b2.shape == (1,)
        assert np.shares_memory(result.parameters.b1, b1_row)
        np.testing.assert_array_equal(b1_row[0], expected.parameters.b1)
        np.testing.assert_array_equal(b2_row[0], expected.parameters.b2)
        assert result.loss_history == expected.loss_history

    def test_row_count_mismatch_raises(self, regression_data):
        inputs, targets = regression_data

        with pytest.raises(ValueError, match="rows"):
            fit(inputs, targets[:-1], FitConfig(num_iterations=1))

    def test_one_dimensional_targets_raise(self, regression_data):
        inputs, targets = regression_data

        with pytest.raises(ValueError, match="2-D"):
            fit(inputs, targets.ravel(), FitConfig(num_iterations=1))

    def test_verbose_prints_progress(self, regression_data, capsys):
        inputs, targets = regression_data

        fit(inputs, targets, FitConfig(num_iterations=20), verbose=True)
        lines = capsys.readouterr().out.strip().splitlines()

        assert len(lines) == 2
        assert lines[0].startswith("Iteration")
        assert "Loss:" in lines[1]

    def test_log_every_zero_disables_reports(self, regression_data):
        inputs, targets = regression_data
        reports = []

        fit(
            inputs,
            targets,
            FitConfig(num_iterations=20, log_every=0),
            progress_callback=lambda iteration, loss: reports.append(iteration),
        )

        assert reports == []


class TestDivergence:
    """
    Too large a learning rate makes the loss blow up. The loop does not
    guard against it; these tests pin down that behavior.
    """

    def test_large_learning_rate_diverges(self, regression_data):
        inputs, targets = regression_data
        config = FitConfig(learning_rate=1e-1, num_iterations=30)

        with np.errstate(over="ignore", invalid="ignore"):
            result = fit(inputs, targets, config)

        assert len(result.loss_history) == 30
        assert is_diverged(result.loss_history)

    def test_non_finite_losses_are_recorded_not_raised(self, regression_data):
        inputs, targets = regression_data
        config = FitConfig(learning_rate=1.0, num_iterations=200, log_every=0)

        with np.errstate(over="ignore", invalid="ignore"):
            result = fit(inputs, targets, config)

        assert len(result.loss_history) == 200
        assert not np.all(np.isfinite(result.loss_history))


class TestFitResult:
    """Test the result helpers."""

    def test_loss_ratio(self):
        result = FitResult(
            parameters=initialize_parameters(1, 1, 1, seed=0),
            loss_history=[100.0, 50.0, 5.0],
        )

        assert result.loss_ratio() == pytest.approx(0.05)

    def test_loss_ratio_empty(self):
        result = FitResult(parameters=initialize_parameters(1, 1, 1, seed=0))

        assert np.isnan(result.loss_ratio())


class TestHelpers:
    """Test the validation and reporting helpers shared by the fit loops."""

    def test_prepare_data_converts_to_float64(self):
        inputs, targets = prepare_data([[1, 2], [3, 4]], [[1], [0]])

        assert inputs.dtype == np.float64
        assert targets.dtype == np.float64

    def test_prepare_data_rejects_row_mismatch(self):
        with pytest.raises(ValueError, match="rows"):
            prepare_data(np.zeros((4, 3)), np.zeros((5, 1)))

    def test_check_parameters_accepts_fresh_parameters(self):
        parameters = initialize_parameters(3, 8, 2, seed=0)

        check_parameters(parameters, 3, 8, 2)

    def test_check_parameters_rejects_column_bias(self):
        parameters = initialize_parameters(3, 8, 1, seed=0)
        parameters.b1 = np.zeros((8, 1))

        with pytest.raises(ValueError, match="Parameter 'b1'"):
            check_parameters(parameters, 3, 8, 1)

    def test_report_progress_cadence(self, capsys):
        reports = []

        for iteration in range(1, 8):
            report_progress(
                iteration,
                float(iteration),
                3,
                lambda step, loss: reports.append((step, loss)),
                verbose=True,
            )

        assert reports == [(3, 3.0), (6, 6.0)]
        assert capsys.readouterr().out.count("Iteration") == 2

    def test_report_progress_disabled(self):
        reports = []

        report_progress(10, 1.0, 0, lambda step, loss: reports.append(step))

        assert reports == []
