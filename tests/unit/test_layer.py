import numpy as np
import pytest

from backpropnets.core import codec
from backpropnets.core.activations import sigmoid
from backpropnets.core.errors import ShapeMismatchError
from backpropnets.core.layer import Layer


@pytest.mark.parametrize("x_count,y_count", [(1, 1), (2, 3), (8, 32)])
def test_w_count_matches_shape(x_count, y_count):
    layer = Layer(x_count, y_count)
    assert layer.w_count == x_count * y_count
    assert layer.w.size == layer.w_count
    assert layer.w.shape == (x_count, y_count)


def test_rejects_empty_dimensions():
    with pytest.raises(ShapeMismatchError):
        Layer(0, 3)


def test_buffers_round_trip():
    layer = Layer(2, 3)
    layer.x = [0.25, -1.0]
    layer.y = [1.0, 2.0, 3.0]
    layer.g = [0.5, 0.0, -0.5]
    layer.w = [1, 2, 3, 4, 5, 6]
    assert layer.x.tolist() == [0.25, -1.0]
    assert layer.y.tolist() == [1.0, 2.0, 3.0]
    assert layer.g.tolist() == [0.5, 0.0, -0.5]
    assert layer.w.tolist() == [[1, 2, 3], [4, 5, 6]]
    layer.w = np.arange(6.0).reshape(2, 3)
    assert layer.w.reshape(-1).tolist() == [0, 1, 2, 3, 4, 5]


@pytest.mark.parametrize("name,values", [("x", [1.0]), ("y", [1.0, 2.0]), ("g", []), ("w", [1.0] * 5)])
def test_setters_validate_length(name, values):
    layer = Layer(2, 3)
    with pytest.raises(ShapeMismatchError):
        setattr(layer, name, values)


def test_getters_return_copies():
    layer = Layer(2, 2)
    w = layer.w
    w[0, 0] = 5.0
    assert layer.w[0, 0] == 0.0


def test_single_weight_has_zero_stddev():
    layer = Layer(1, 1)
    for _ in range(5):
        layer.randomize(1.0)
        assert layer.w_stddev == 0.0


def test_randomize_varies_stddev_for_larger_layers():
    layer = Layer(4, 5)
    layer.randomize(1.0)
    first = layer.w_stddev
    layer.randomize(1.0)
    assert layer.w_stddev != first


def test_seeded_randomize_is_reproducible_and_bounded():
    a, b = Layer(3, 4), Layer(3, 4)
    a.randomize(0.5, seed=11)
    b.randomize(0.5, seed=11)
    assert np.array_equal(a.w, b.w)
    assert np.all(np.abs(a.w) <= 0.5)


def test_weight_statistics():
    layer = Layer(2, 2)
    layer.w = [1.0, 2.0, 3.0, 4.0]
    assert layer.w_sum == 10.0
    assert layer.w_mean == 2.5
    assert layer.w_stddev == pytest.approx(np.std([1.0, 2.0, 3.0, 4.0]))


def test_activate_applies_sigmoid_without_touching_inputs():
    layer = Layer(2, 2)
    layer.w = [[0.5, -1.0], [2.0, 0.0]]
    layer.x = [1.0, 0.5]
    layer.g = [0.1, 0.2]
    y = layer.activate()
    assert np.allclose(y, sigmoid(np.array([1.5, -1.0])))
    assert layer.x.tolist() == [1.0, 0.5]
    assert layer.g.tolist() == [0.1, 0.2]
    assert layer.w.tolist() == [[0.5, -1.0], [2.0, 0.0]]


def test_prune_zeroes_smallest_magnitudes():
    layer = Layer(3, 4)
    layer.w = np.array([5, -1, 7, 2, -3, 9, 4, -8, 6, 10, -11, 12], dtype=float)
    assert layer.prune(25) == 3
    flat = layer.w.reshape(-1)
    assert flat.tolist() == [5, 0, 7, 0, 0, 9, 4, -8, 6, 10, -11, 12]


def test_prune_breaks_ties_by_index():
    layer = Layer(2, 2)
    layer.w = [1.0, -1.0, 1.0, 1.0]
    layer.prune(50)
    assert layer.w.reshape(-1).tolist() == [0.0, 0.0, 1.0, 1.0]


def test_prune_clamps_percent():
    layer = Layer(2, 2)
    layer.w = [1.0, 2.0, 3.0, 4.0]
    assert layer.prune(-10) == 0
    assert layer.nonzero_count() == 4
    assert layer.prune(150) == 4
    assert layer.nonzero_count() == 0


def test_prune_never_adds_nonzero_weights():
    layer = Layer(6, 7)
    layer.randomize(1.0, seed=3)
    previous = layer.nonzero_count()
    for percent in [0, 5, 10, 33, 50, 80, 100]:
        layer.prune(percent)
        assert layer.nonzero_count() <= previous
        previous = layer.nonzero_count()


def test_prune_below_and_round():
    layer = Layer(2, 2)
    layer.w = [0.2, -0.6, 1.4, -0.1]
    assert layer.prune_below(0.5) == 2
    assert layer.w.reshape(-1).tolist() == [0.0, -0.6, 1.4, 0.0]
    layer.round()
    assert layer.w.reshape(-1).tolist() == [0.0, -1.0, 1.0, 0.0]


def test_identity_places_diagonal_ones():
    layer = Layer(2, 3)
    layer.randomize(1.0)
    layer.identity()
    assert layer.w.tolist() == [[1, 0, 0], [0, 1, 0]]


@pytest.mark.parametrize("symbol", ["a", "b", "z", "\x00", "\xff"])
def test_identity_layer_round_trips_a_symbol(symbol):
    layer = Layer(8, 8)
    layer.identity()
    layer.x = codec.encode(symbol)
    assert codec.decode(layer.activate()) == symbol


def test_reset_keeps_weights():
    layer = Layer(2, 2)
    layer.w = [1.0, 2.0, 3.0, 4.0]
    layer.x = [1.0, 1.0]
    layer.activate()
    layer.g = [1.0, 1.0]
    layer.reset()
    assert layer.x.tolist() == [0.0, 0.0]
    assert layer.y.tolist() == [0.0, 0.0]
    assert layer.g.tolist() == [0.0, 0.0]
    assert layer.w_sum == 10.0


def test_weighted_gradient_and_correct():
    layer = Layer(2, 1)
    layer.x = [1.0, 2.0]
    layer.g = [0.5]
    total = layer.correct(0.1)
    assert np.allclose(layer.w.reshape(-1), [0.05, 0.1])
    assert total == pytest.approx(0.15)
    assert np.allclose(layer.weighted_gradient(), [0.025, 0.05])


def test_correct_with_momentum_reapplies_previous_step():
    layer = Layer(1, 1)
    layer.x = [1.0]
    layer.g = [1.0]
    layer.correct(1.0, momentum_rate=0.5)
    layer.correct(1.0, momentum_rate=0.5)
    assert layer.w[0, 0] == pytest.approx(1.0 + 1.5)


def test_record_round_trip():
    layer = Layer(3, 2)
    layer.randomize(1.0, seed=5)
    layer.x = [0.1, 0.2, 0.3]
    layer.activate()
    clone = Layer.from_record(layer.to_record())
    assert clone.shape == layer.shape
    assert np.array_equal(clone.w, layer.w)
    assert np.array_equal(clone.x, layer.x)
    assert np.array_equal(clone.y, layer.y)


def test_load_record_requires_keys():
    with pytest.raises(KeyError):
        Layer(1, 1).load_record({"x": [0.0], "w": [0.0]})
