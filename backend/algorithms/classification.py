"""
Classification engine: train-and-predict in one call.

Three classifiers share the same contract: fit on labeled training points,
predict every test point, then score the predictions against whatever test
labels are present. Labels are encoded as integer class indices in order of
first appearance in the training set, which is also the tie-breaking order.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Sequence
import math
import numpy as np
from sklearn.metrics import accuracy_score, confusion_matrix, precision_recall_fscore_support

from algorithms.datatypes import (ClassificationPrediction, ClassificationResult, ClassifierModel,
                                  Label)
from algorithms.errors import ConfigurationError, NumericalError, ValidationError
from algorithms.utils import bind_options, get_field, require_finite, require_int

DEFAULT_K = 3
VAR_EPSILON = 1e-9
GINI_TOLERANCE = 1e-12

# ------------ Utilities ------------

def _features(point: Any, where: str) -> List[float]:
    raw = get_field(point, "features")
    if isinstance(raw, (str, bytes)) or not hasattr(raw, "__len__"):
        raise ValidationError(f"{where}.features must be a list of numbers, got {raw!r}")
    if len(raw) == 0:
        raise ValidationError(f"{where}.features is empty")
    return [require_finite(v, f"{where}.features[{j}]") for j, v in enumerate(raw)]

def _label(point: Any, where: str, required: bool) -> Optional[Label]:
    label = get_field(point, "label", required=False)
    if label is None:
        if required:
            raise ValidationError(f"{where} has no label; training points must be labeled")
        return None
    if isinstance(label, bool) or not isinstance(label, (str, int, float)):
        raise ValidationError(f"{where}.label must be a string or number, got {label!r}")
    return label

def prepare(train: Sequence[Any], test: Sequence[Any]):
    """Validate both sets; return (X_train, y_train, classes, X_test, actual_labels)."""
    if not train:
        raise ValidationError("Training set is empty")
    if not test:
        raise ValidationError("Test set is empty")
    X_train = [_features(p, f"train[{i}]") for i, p in enumerate(train)]
    X_test = [_features(p, f"test[{i}]") for i, p in enumerate(test)]
    width = len(X_train[0])
    for name, rows in (("train", X_train), ("test", X_test)):
        for i, row in enumerate(rows):
            if len(row) != width:
                raise ValidationError(
                    f"{name}[{i}] has {len(row)} features, expected {width}")
    train_labels = [_label(p, f"train[{i}]", True) for i, p in enumerate(train)]
    actual = [_label(p, f"test[{i}]", False) for i, p in enumerate(test)]
    classes = list(dict.fromkeys(train_labels))
    # scoring keys classes by str(label), so 1 and "1" cannot both be classes
    seen: Dict[str, Label] = {}
    for label in classes:
        if str(label) in seen:
            raise ValidationError(
                f"Training labels {seen[str(label)]!r} and {label!r} collide as class {str(label)!r}")
        seen[str(label)] = label
    index = {c: i for i, c in enumerate(classes)}
    y_train = np.array([index[l] for l in train_labels], dtype=int)
    return np.array(X_train, dtype=float), y_train, classes, np.array(X_test, dtype=float), actual

def gini(counts: np.ndarray) -> float:
    total = counts.sum()
    if total == 0:
        return 0.0
    p = counts / total
    return float(1.0 - np.sum(p ** 2))

# ------------ Base Class ------------

class BaseClassifier:
    model: ClassifierModel
    def fit(self, X: np.ndarray, y: np.ndarray, n_classes: int): raise NotImplementedError
    def predict(self, X: np.ndarray) -> np.ndarray: raise NotImplementedError

# ------------ 1) KNN Classifier ------------

class KNNClassifier(BaseClassifier):
    model = ClassifierModel.KNN
    def __init__(self, k: int = DEFAULT_K):
        self.k = require_int(k, "k")
        self.X = None
        self.y = None

    def fit(self, X, y, n_classes):
        self.X, self.y = X, y
        return self

    def _vote(self, xi) -> int:
        dists = np.sqrt(np.sum((self.X - xi) ** 2, axis=1))
        nearest = np.argsort(dists, kind="stable")[:self.k]
        votes: Dict[int, int] = {}
        for label in self.y[nearest]:
            votes[int(label)] = votes.get(int(label), 0) + 1
        # max() keeps the first maximal key, i.e. the nearest label on ties
        return max(votes, key=votes.get)

    def predict(self, X):
        return np.array([self._vote(xi) for xi in X], dtype=int)

# ------------ 2) Decision Tree (Gini, grown to purity) ------------

class DecisionTreeClassifier(BaseClassifier):
    model = ClassifierModel.DECISION_TREE
    def __init__(self):
        self.n_classes = 0
        self.tree_ = None

    def _best_split(self, X, y, parent_impurity):
        """
        Scan every feature for the midpoint threshold with the lowest weighted Gini.
        A feature's candidate replaces the current best only if it beats it by more
        than GINI_TOLERANCE, so earlier features win near-ties; within a feature the
        first threshold within tolerance of the minimum is taken.
        """
        m, n = X.shape
        best = {"gini": parent_impurity, "idx": None, "thr": None}
        n_left = np.arange(1, m, dtype=float)[:, None]
        n_right = m - n_left
        for idx in range(n):
            order = np.argsort(X[:, idx], kind="stable")
            values, labels = X[order, idx], y[order]
            onehot = np.eye(self.n_classes)[labels]
            # class counts on each side of the cut between sorted positions i and i + 1
            left = np.cumsum(onehot, axis=0)[:-1]
            right = onehot.sum(axis=0) - left
            g_left = 1.0 - np.sum((left / n_left) ** 2, axis=1)
            g_right = 1.0 - np.sum((right / n_right) ** 2, axis=1)
            weighted = (n_left[:, 0] * g_left + n_right[:, 0] * g_right) / m
            weighted[values[:-1] == values[1:]] = np.inf
            g = float(np.min(weighted))
            if g < best["gini"] - GINI_TOLERANCE:
                i = int(np.argmax(weighted <= g + GINI_TOLERANCE))
                thr = (values[i] + values[i + 1]) / 2.0
                if thr >= values[i + 1]:
                    # adjacent floats: the midpoint rounds up onto the right value
                    thr = values[i]
                best = {"gini": g, "idx": idx, "thr": float(thr)}
        return best["idx"], best["thr"]

    def _build(self, X, y):
        """Grow the tree depth-first from an explicit stack of (rows, labels, node to fill)."""
        root: Dict[str, Any] = {}
        stack = [(X, y, root)]
        while stack:
            X, y, node = stack.pop()
            counts = np.bincount(y, minlength=self.n_classes)
            impurity = gini(counts)
            idx, thr = self._best_split(X, y, impurity) if impurity > 0.0 else (None, None)
            if idx is None:
                node.update({"type": "leaf", "class": int(np.argmax(counts))})
                continue
            left_idx = X[:, idx] <= thr
            node.update({"type": "node", "idx": idx, "thr": thr, "left": {}, "right": {}})
            stack.append((X[~left_idx], y[~left_idx], node["right"]))
            stack.append((X[left_idx], y[left_idx], node["left"]))
        return root

    def fit(self, X, y, n_classes):
        self.n_classes = n_classes
        self.tree_ = self._build(X, y)
        return self

    def _predict_one(self, x, node):
        while node["type"] != "leaf":
            node = node["left"] if x[node["idx"]] <= node["thr"] else node["right"]
        return node["class"]

    def predict(self, X):
        return np.array([self._predict_one(x, self.tree_) for x in X], dtype=int)

    def depth(self) -> int:
        deepest = 0
        stack = [(self.tree_, 0)]
        while stack:
            node, level = stack.pop()
            if node["type"] == "leaf":
                deepest = max(deepest, level)
            else:
                stack.append((node["left"], level + 1))
                stack.append((node["right"], level + 1))
        return deepest

# ------------ 3) Gaussian Naive Bayes ------------

class GaussianNaiveBayes(BaseClassifier):
    model = ClassifierModel.NAIVE_BAYES
    def __init__(self, eps: float = VAR_EPSILON):
        self.eps = eps
        self.prior_ = None
        self.mean_ = None
        self.var_ = None

    def fit(self, X, y, n_classes):
        n_features = X.shape[1]
        self.mean_ = np.zeros((n_classes, n_features))
        self.var_ = np.zeros((n_classes, n_features))
        self.prior_ = np.zeros(n_classes)
        for c in range(n_classes):
            Xc = X[y == c]
            if Xc.shape[0] == 0:
                raise NumericalError(f"Class index {c} has no training samples")
            self.mean_[c] = Xc.mean(axis=0)
            self.var_[c] = Xc.var(axis=0) + self.eps
            self.prior_[c] = Xc.shape[0] / X.shape[0]
        return self

    def log_posterior(self, X) -> np.ndarray:
        """Unnormalized log P(class | x) for every row of X, shape (n_samples, n_classes)."""
        scores = []
        for c in range(len(self.prior_)):
            mean, var = self.mean_[c], self.var_[c]
            log_likelihood = -0.5 * np.sum(np.log(2 * math.pi * var) + ((X - mean) ** 2) / var, axis=1)
            scores.append(math.log(self.prior_[c]) + log_likelihood)
        return np.vstack(scores).T

    def predict(self, X):
        return np.argmax(self.log_posterior(X), axis=1)

# ------------ Scoring ------------

def summarize(model: ClassifierModel, actual: List[Optional[Label]],
              predicted: List[Label]) -> ClassificationResult:
    predictions = tuple(ClassificationPrediction(a, p) for a, p in zip(actual, predicted))
    labeled = [(str(a), str(p)) for a, p in zip(actual, predicted) if a is not None]
    if not labeled:
        return ClassificationResult(model=model, predictions=predictions, accuracy=0.0,
                                    confusion_matrix={})

    y_true = [a for a, _ in labeled]
    y_pred = [p for _, p in labeled]
    labels = list(dict.fromkeys(y_true + y_pred))
    cm = confusion_matrix(y_true, y_pred, labels=labels)
    matrix: Dict[str, Dict[str, int]] = {}
    for i, a in enumerate(labels):
        row = {p: int(cm[i, j]) for j, p in enumerate(labels) if cm[i, j] > 0}
        if row:
            matrix[a] = row
    precision, recall, f1, _ = precision_recall_fscore_support(
        y_true, y_pred, labels=labels, average="macro", zero_division=0)
    return ClassificationResult(
        model=model,
        predictions=predictions,
        accuracy=float(accuracy_score(y_true, y_pred)),
        confusion_matrix=matrix,
        precision=float(precision),
        recall=float(recall),
        f1_score=float(f1),
    )

def _run(classifier: BaseClassifier, train, test) -> ClassificationResult:
    X_train, y_train, classes, X_test, actual = prepare(train, test)
    y_pred = classifier.fit(X_train, y_train, len(classes)).predict(X_test)
    return summarize(classifier.model, actual, [classes[int(i)] for i in y_pred])

# ------------ Entry points ------------

def knn_classifier(train: Sequence[Any], test: Sequence[Any], k: int = DEFAULT_K) -> ClassificationResult:
    return _run(KNNClassifier(k), train, test)

def decision_tree_classifier(train: Sequence[Any], test: Sequence[Any]) -> ClassificationResult:
    return _run(DecisionTreeClassifier(), train, test)

def naive_bayes_classifier(train: Sequence[Any], test: Sequence[Any]) -> ClassificationResult:
    return _run(GaussianNaiveBayes(), train, test)

# ------------ Registry ------------

CLASSIFIERS: Dict[ClassifierModel, Callable[..., ClassificationResult]] = {
    ClassifierModel.KNN: knn_classifier,
    ClassifierModel.DECISION_TREE: decision_tree_classifier,
    ClassifierModel.NAIVE_BAYES: naive_bayes_classifier,
}

def parse_classifier_model(value) -> ClassifierModel:
    try:
        return ClassifierModel(value)
    except ValueError:
        raise ConfigurationError(
            f"Unknown classification model {value!r}. Valid: {[m.value for m in ClassifierModel]}") from None

def classify(train: Sequence[Any], test: Sequence[Any], model=ClassifierModel.KNN,
             options: Optional[Dict[str, Any]] = None) -> ClassificationResult:
    """Train the classifier named by `model` on `train` and predict `test`."""
    func = CLASSIFIERS[parse_classifier_model(model)]
    options = options or {}
    bind_options(func, train, test, **options)
    return func(train, test, **options)
