from __future__ import annotations

"""
Penalized and unpenalized logistic models on top of scikit-learn.

Strength ``lam`` follows the glmnet convention: the objective is
mean log-loss + lam * penalty (ridge: 0.5 * ||b||^2, lasso: ||b||_1),
which is scikit-learn's LogisticRegression with C = 1 / (n_rows * lam).
"""

from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegression

from .constants import DECISION_THRESHOLD, RIDGE_LAMBDA_MAX_FACTOR

FAMILIES = ("none", "ridge", "lasso")


@dataclass(frozen=True)
class FittedModel:
    """
    Read-only fitted model. ``coefficients`` maps class label to its coefficient
    vector; binary models have a single entry keyed by the positive class.
    """

    family: str
    strength: float
    classes: tuple
    coefficients: dict
    intercepts: dict
    estimator: LogisticRegression = field(repr=False, compare=False)

    @property
    def is_binary(self) -> bool:
        return len(self.classes) == 2

    @property
    def positive_class(self):
        if not self.is_binary:
            raise AttributeError("positive_class is only defined for binary models")
        return self.classes[1]

    @property
    def feature_names(self) -> list[str]:
        return list(next(iter(self.coefficients.values())).index)

    def coef_frame(self) -> pd.DataFrame:
        """Coefficients as a features x classes table."""
        return pd.DataFrame(self.coefficients)

    def nonzero_count(self) -> int:
        """Number of features with a non-zero coefficient for any class."""
        return int((self.coef_frame() != 0).any(axis=1).sum())

    def predict_proba(self, X) -> pd.DataFrame:
        X_arr, index = _as_matrix(X, self.feature_names)
        probs = self.estimator.predict_proba(X_arr)
        return pd.DataFrame(probs, index=index, columns=list(self.classes))

    def predict(self, X, threshold: float = DECISION_THRESHOLD) -> pd.Series:
        """Binary: positive iff P(positive) >= threshold. Multinomial: arg-max."""
        proba = self.predict_proba(X)
        if self.is_binary:
            labels = np.where(proba[self.positive_class] >= threshold, self.classes[1], self.classes[0])
            return pd.Series(labels, index=proba.index)
        return proba.idxmax(axis=1)


def _as_matrix(X, feature_names: list[str]) -> tuple[np.ndarray, pd.Index | None]:
    if isinstance(X, pd.DataFrame):
        missing = [c for c in feature_names if c not in X.columns]
        if missing:
            raise ValueError(f"Missing model features: {missing[:5]}")
        return X[feature_names].to_numpy(dtype=float), X.index
    return np.asarray(X, dtype=float), None


def _make_estimator(family: str, strength: float, n_rows: int, max_iter: int, tol: float):
    if family not in FAMILIES:
        raise ValueError(f"Unknown family: {family}")
    if strength < 0:
        raise ValueError(f"Regularization strength must be non-negative, got {strength}")
    # l1_ratio selects the penalty (0: ridge, 1: lasso); C=inf switches it off
    if family == "none" or strength == 0:
        return LogisticRegression(C=np.inf, l1_ratio=0.0, solver="lbfgs", max_iter=max_iter, tol=tol)

    C = 1.0 / (n_rows * strength)
    if family == "ridge":
        return LogisticRegression(C=C, l1_ratio=0.0, solver="lbfgs", max_iter=max_iter, tol=tol)
    return LogisticRegression(C=C, l1_ratio=1.0, solver="saga", max_iter=max_iter, tol=tol)


def fit_logistic(
    X,
    y,
    family: str = "ridge",
    strength: float = 1.0,
    max_iter: int = 5000,
    tol: float = 1e-4,
) -> FittedModel:
    """Fit one model; multi-class targets get a joint multinomial (softmax) fit."""
    X_arr = np.asarray(X, dtype=float)
    y_arr = np.asarray(y)
    names = (
        list(X.columns)
        if isinstance(X, pd.DataFrame)
        else [f"x{j}" for j in range(X_arr.shape[1])]
    )

    estimator = _make_estimator(family, strength, X_arr.shape[0], max_iter, tol)
    estimator.fit(X_arr, y_arr)

    classes = tuple(estimator.classes_.tolist())
    labels = [classes[-1]] if estimator.coef_.shape[0] == 1 else list(classes)
    coefficients = {
        label: pd.Series(estimator.coef_[i], index=names, name=label)
        for i, label in enumerate(labels)
    }
    intercepts = {label: float(estimator.intercept_[i]) for i, label in enumerate(labels)}

    return FittedModel(
        family=family,
        strength=float(strength),
        classes=classes,
        coefficients=coefficients,
        intercepts=intercepts,
        estimator=estimator,
    )


def lambda_max(X, y) -> float:
    """Smallest lasso strength at which every coefficient is zero."""
    X_arr = np.asarray(X, dtype=float)
    Y = pd.get_dummies(pd.Series(np.asarray(y))).to_numpy(dtype=float)
    if Y.shape[1] == 2:
        Y = Y[:, 1:]
    grad = np.abs(X_arr.T @ (Y - Y.mean(axis=0))) / X_arr.shape[0]
    return float(grad.max()) if grad.size else 0.0


def lambda_grid(
    X,
    y,
    family: str = "lasso",
    n_lambda: int = 30,
    min_ratio: float | None = None,
) -> np.ndarray:
    """Descending log-spaced strengths from lambda_max to lambda_max * min_ratio."""
    n_rows, n_features = np.shape(X)
    if min_ratio is None:
        min_ratio = 0.01 if n_rows < n_features else 1e-4

    top = lambda_max(X, y)
    if top <= 0:
        raise ValueError("lambda_max is zero: no feature is associated with the target")
    if family == "ridge":
        top *= RIDGE_LAMBDA_MAX_FACTOR
    return np.logspace(np.log10(top), np.log10(top * min_ratio), n_lambda)
