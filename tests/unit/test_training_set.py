import pytest

from backpropnets.core.errors import OutOfRangeError, SizeMismatchError
from backpropnets.training.training_set import TrainingSet


def test_sizes_come_from_first_pair():
    training_set = TrainingSet(["a", "b", "c"], ["x", "y", "z"])
    assert training_set.count == 3
    assert len(training_set) == 3
    assert training_set.x_size == 1
    assert training_set.y_size == 1

    wide = TrainingSet(["aa", "bb"], ["x", "y"])
    assert wide.x_size == 2
    assert wide.y_size == 1


@pytest.mark.parametrize(
    "inputs,outputs",
    [
        (["a", "b"], ["x"]),
        ([], []),
        (["a", "bb"], ["x", "y"]),
        (["a", "b"], ["x", "yy"]),
        ([""], ["x"]),
    ],
)
def test_construction_errors(inputs, outputs):
    with pytest.raises(SizeMismatchError):
        TrainingSet(inputs, outputs)


def test_accessors_follow_python_indexing():
    training_set = TrainingSet(["a", "b", "c"], ["x", "y", "z"])
    assert training_set.x_at(0) == "a"
    assert training_set.y_at(-1) == "z"
    assert training_set.x_at(-3) == "a"
    for index in (3, -4):
        with pytest.raises(OutOfRangeError):
            training_set.x_at(index)
        with pytest.raises(OutOfRangeError):
            training_set.y_at(index)


def test_pairs_iterate_in_order():
    training_set = TrainingSet(["a", "b"], ["x", "y"])
    assert list(training_set.pairs()) == [("a", "x"), ("b", "y")]
    assert list(training_set) == [("a", "x"), ("b", "y")]


def test_is_immutable():
    training_set = TrainingSet(["a"], ["b"])
    with pytest.raises(AttributeError):
        training_set.count = 5  # type: ignore[misc]
    with pytest.raises(AttributeError):
        training_set._inputs = ("z",)  # type: ignore[misc]


def test_dict_round_trip():
    training_set = TrainingSet(["a", "b", "c"], ["x", "y", "z"])
    data = training_set.to_dict()
    assert data["count"] == 3
    assert data["x_size"] == 1 and data["y_size"] == 1
    assert TrainingSet.from_mapping(data) == training_set
    assert TrainingSet.from_mapping({"inputs": ["a"], "outputs": ["b"]}).count == 1
    assert TrainingSet.from_mapping({"a": "b", "c": "d"}).y_at(1) == "d"
