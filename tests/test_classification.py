"""
Tests for the classification engine.
"""
import numpy as np
import pytest
from sklearn.datasets import make_blobs

from algorithms.classification import (DecisionTreeClassifier, GaussianNaiveBayes, classify,
                                       decision_tree_classifier, knn_classifier,
                                       naive_bayes_classifier)
from algorithms.datatypes import ClassificationDataPoint, ClassifierModel
from algorithms.errors import ConfigurationError, NumericalError, ValidationError


def pt(features, label=None):
    return ClassificationDataPoint(features=tuple(features), label=label)


@pytest.fixture
def blobs():
    """Three well-separated clusters split into alternating train/test halves."""
    X, y = make_blobs(n_samples=120, centers=3, n_features=2, cluster_std=0.5, random_state=42)
    data = [pt(row, int(label)) for row, label in zip(X, y)]
    return data[::2], data[1::2]


@pytest.fixture
def one_dimensional():
    train = [pt([v], "A") for v in (0, 1, 2, -1, -2)] + [pt([v], "B") for v in (98, 99, 100, 101, 102)]
    test = [pt([1], "A"), pt([99], "B")]
    return train, test


def test_knn_nearest_neighbor():
    train = [pt([0, 0], "A"), pt([10, 10], "B")]
    result = knn_classifier(train, [pt([1, 1])], k=1)
    assert result.model is ClassifierModel.KNN
    assert result.predictions[0].predicted == "A"
    assert result.predictions[0].actual is None


def test_knn_identical_point_with_k1():
    train = [pt([1, 2], "x"), pt([3, 4], "y"), pt([5, 6], "z")]
    result = knn_classifier(train, [pt([3, 4], "y")], k=1)
    assert result.predictions[0].predicted == "y"
    assert result.accuracy == 1.0


def test_knn_tie_goes_to_nearest_first():
    train = [pt([0], "A"), pt([2], "B")]
    result = knn_classifier(train, [pt([1])], k=2)
    assert result.predictions[0].predicted == "A"


def test_knn_majority_vote():
    train = [pt([0], "A"), pt([3], "B"), pt([3.5], "B")]
    result = knn_classifier(train, [pt([1])], k=3)
    assert result.predictions[0].predicted == "B"


def test_knn_k_larger_than_training_set():
    train = [pt([0], "A"), pt([1], "A"), pt([5], "B")]
    result = knn_classifier(train, [pt([4])], k=10)
    assert result.predictions[0].predicted == "A"


@pytest.mark.parametrize("k", [0, -1, 1.5, "3"])
def test_knn_invalid_k(k):
    with pytest.raises(ConfigurationError):
        knn_classifier([pt([0], "A")], [pt([0])], k=k)


def test_decision_tree_single_threshold(one_dimensional):
    train, test = one_dimensional
    result = decision_tree_classifier(train, test)
    assert [p.predicted for p in result.predictions] == ["A", "B"]
    tree = DecisionTreeClassifier().fit(np.array([[p.features[0]] for p in train]),
                                        np.array([0] * 5 + [1] * 5), 2)
    assert tree.depth() == 1
    assert tree.tree_["thr"] == pytest.approx(50.0)


def test_decision_tree_grows_to_purity():
    train = [pt([1], "A"), pt([2], "B"), pt([3], "A"), pt([4], "B")]
    result = decision_tree_classifier(train, train)
    assert result.accuracy == 1.0


def test_decision_tree_stops_without_impurity_gain():
    """XOR: no single axis split lowers Gini, so the root stays a leaf."""
    train = [pt([0, 0], "A"), pt([0, 1], "B"), pt([1, 0], "B"), pt([1, 1], "A")]
    X = np.array([p.features for p in train], dtype=float)
    tree = DecisionTreeClassifier().fit(X, np.array([0, 1, 1, 0]), 2)
    assert tree.depth() == 0
    result = decision_tree_classifier(train, [pt([0, 1]), pt([1, 1])])
    assert [p.predicted for p in result.predictions] == ["A", "A"]


def test_naive_bayes_separated_clusters(one_dimensional):
    train, test = one_dimensional
    result = naive_bayes_classifier(train, test)
    assert [p.predicted for p in result.predictions] == ["A", "B"]
    assert result.accuracy == 1.0
    assert result.confusion_matrix == {"A": {"A": 1}, "B": {"B": 1}}


def test_naive_bayes_empty_class_raises():
    X = np.array([[0.0], [1.0]])
    with pytest.raises(NumericalError):
        GaussianNaiveBayes().fit(X, np.array([0, 0]), 2)


@pytest.mark.parametrize("model", list(ClassifierModel))
def test_classifiers_on_blobs(blobs, model):
    train, test = blobs
    result = classify(train, test, model)
    assert result.accuracy >= 0.95
    assert sum(sum(row.values()) for row in result.confusion_matrix.values()) == len(test)


@pytest.mark.parametrize("model", list(ClassifierModel))
def test_classifiers_are_deterministic(blobs, model):
    train, test = blobs
    assert classify(train, test, model) == classify(train, test, model)


def test_confusion_matrix_counts_only_labeled_points():
    train = [pt([0], "A"), pt([10], "B")]
    test = [pt([1], "A"), pt([9], "A"), pt([2]), pt([8])]
    result = knn_classifier(train, test, k=1)
    assert result.confusion_matrix == {"A": {"A": 1, "B": 1}}
    assert result.accuracy == 0.5
    assert sum(sum(row.values()) for row in result.confusion_matrix.values()) == 2


def test_unlabeled_test_set_scores_zero():
    result = knn_classifier([pt([0], "A")], [pt([1])], k=1)
    assert result.accuracy == 0.0
    assert result.confusion_matrix == {}


def test_numeric_labels_keyed_by_string():
    train = [pt([0], 0), pt([10], 1)]
    result = knn_classifier(train, [pt([1], 0), pt([9], 1)], k=1)
    assert result.confusion_matrix == {"0": {"0": 1}, "1": {"1": 1}}
    assert result.predictions[1].predicted == 1


def test_accepts_plain_mappings():
    train = [{"features": [0, 0], "label": "A"}, {"features": [5, 5], "label": "B"}]
    result = knn_classifier(train, [{"features": [4, 4], "label": "B"}], k=1)
    assert result.accuracy == 1.0


@pytest.mark.parametrize("train, test", [
    ([], [pt([0])]),
    ([pt([0], "A")], []),
    ([pt([0], "A"), pt([0, 1], "B")], [pt([0])]),
    ([pt([0], "A")], [pt([0, 1])]),
    ([pt([0])], [pt([0])]),
    ([pt([float("nan")], "A")], [pt([0])]),
    ([pt([], "A")], [pt([])]),
])
def test_invalid_inputs(train, test):
    with pytest.raises(ValidationError):
        knn_classifier(train, test)


def test_classify_unknown_model():
    with pytest.raises(ConfigurationError):
        classify([pt([0], "A")], [pt([0])], "svm")


def test_classify_rejects_option_for_other_model():
    with pytest.raises(ConfigurationError):
        classify([pt([0], "A")], [pt([0])], "decision_tree", {"k": 3})


def test_classify_passes_options():
    train = [pt([0], "A"), pt([3], "B"), pt([3.5], "B")]
    result = classify(train, [pt([1])], "knn", {"k": 1})
    assert result.predictions[0].predicted == "A"


def test_result_to_dict_shape(one_dimensional):
    train, test = one_dimensional
    payload = naive_bayes_classifier(train, test).to_dict()
    assert payload["model"] == "naive_bayes"
    assert payload["predictions"][0] == {"actual": "A", "predicted": "A"}
    assert payload["confusionMatrix"] == {"A": {"A": 1}, "B": {"B": 1}}
    assert {"accuracy", "precision", "recall", "f1Score"} <= set(payload)


def test_decision_tree_one_leaf_per_sample():
    """Alternating labels peel off one sample per level, giving a tree thousands of levels deep."""
    train = [pt([float(i)], "A" if i % 2 == 0 else "B") for i in range(3000)]
    result = decision_tree_classifier(train, train[:10] + train[-10:])
    assert result.accuracy == 1.0
    X = np.array([p.features for p in train])
    y = np.arange(3000) % 2
    assert DecisionTreeClassifier().fit(X, y, 2).depth() > 1000


def test_labels_colliding_as_strings_rejected():
    train = [pt([0], 1), pt([1], "1"), pt([5], "B")]
    with pytest.raises(ValidationError):
        knn_classifier(train, [pt([0], 1)])
