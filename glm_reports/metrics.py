from __future__ import annotations

"""
Metric helpers: binary and multinomial evaluation, coefficient summaries and
relevant-feature queries on fitted models.
"""

import numpy as np
import pandas as pd
from loguru import logger
from sklearn import metrics

from .constants import DECISION_THRESHOLD, TOP_K_FEATURES
from .models import FittedModel


def _labelled_confusion(y_true, y_pred, labels: list) -> pd.DataFrame:
    cm = metrics.confusion_matrix(y_true, y_pred, labels=labels)
    return pd.DataFrame(
        cm,
        index=pd.Index(labels, name="true"),
        columns=pd.Index(labels, name="predicted"),
    )


def compute_classification_metrics(
    y_true: np.ndarray | pd.Series, probs: np.ndarray, threshold: float = DECISION_THRESHOLD
):
    """Compute standard binary metrics given probabilities and a threshold."""
    y_true = np.asarray(y_true).astype(int)
    probs = np.asarray(probs, dtype=float)
    preds = (probs >= threshold).astype(int)
    precision, recall, f1, _ = metrics.precision_recall_fscore_support(
        y_true, preds, average="binary", zero_division=0
    )

    if len(np.unique(y_true)) < 2:
        logger.warning("Only one class in y_true: ROC curve and AUC are undefined")
        roc_auc = float("nan")
        roc = pd.DataFrame(columns=["fpr", "tpr", "threshold"], dtype=float)
    else:
        fpr, tpr, thresholds = metrics.roc_curve(y_true, probs)
        roc_auc = float(metrics.auc(fpr, tpr))
        roc = pd.DataFrame({"fpr": fpr, "tpr": tpr, "threshold": thresholds})

    return {
        "n": int(len(y_true)),
        "accuracy": metrics.accuracy_score(y_true, preds),
        "precision": precision,
        "recall": recall,
        "f1": f1,
        "roc_auc": roc_auc,
        "roc_curve": roc,
        "confusion_matrix": metrics.confusion_matrix(y_true, preds, labels=[0, 1]),
    }


def majority_baseline(y_train: np.ndarray | pd.Series, y_test: np.ndarray | pd.Series):
    """Scores every test row as the training majority class (1 iff bad rate >= 0.5)."""
    majority = float(np.mean(np.asarray(y_train)) >= 0.5)
    return compute_classification_metrics(y_test, np.full(len(y_test), majority))



def evaluate_binary(
    model: FittedModel, X: pd.DataFrame, y: pd.Series, threshold: float = DECISION_THRESHOLD
):
    """Binary report for a 0/1 target: thresholded predictions, ROC and AUC."""
    if not model.is_binary:
        raise ValueError("evaluate_binary needs a two-class model")
    probs = model.predict_proba(X)[model.positive_class].to_numpy()
    return compute_classification_metrics(y, probs, threshold=threshold)


def evaluate_multinomial(model: FittedModel, X: pd.DataFrame, y: pd.Series):
    """Arg-max predictions; confusion matrix keeps every class on both axes."""
    y_true = np.asarray(y)
    preds = model.predict(X).to_numpy()
    labels = sorted(set(model.classes) | set(y_true.tolist()))
    cm = _labelled_confusion(y_true, preds, labels)
    return {
        "n": int(len(y_true)),
        "accuracy": float(np.trace(cm.to_numpy()) / max(len(y_true), 1)),
        "confusion_matrix": cm,
    }


def summarize_coefficients(coef: pd.Series, top_k: int = TOP_K_FEATURES) -> dict[str, pd.Series]:
    """Largest positive and most negative coefficients, strongest first."""
    positive = coef[coef > 0].nlargest(top_k)
    negative = coef[coef < 0].nsmallest(top_k)
    return {"positive": positive, "negative": negative}



def relevant_features(model: FittedModel, label, top_k: int | None = None) -> pd.Series:
    """
    Non-zero coefficients of ``label``. With ``top_k`` they are sorted by
    descending absolute value and truncated; otherwise feature order is kept.
    """
    if label not in model.coefficients:
        raise KeyError(f"No coefficient vector for class {label!r}; have {list(model.coefficients)}")
    coef = model.coefficients[label]
    nonzero = coef[coef != 0]
    if top_k is None:
        return nonzero
    order = nonzero.abs().sort_values(ascending=False, kind="stable").index
    return nonzero.loc[order].head(top_k)


def top_features_per_class(model: FittedModel, top_k: int = TOP_K_FEATURES) -> dict:
    """Top-k non-zero coefficients for every class with a coefficient vector."""
    return {label: relevant_features(model, label, top_k) for label in model.coefficients}
