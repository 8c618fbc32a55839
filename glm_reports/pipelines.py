from __future__ import annotations

"""
End-to-end runs for the two analyses: load -> filter -> standardize ->
partition -> cross-validated fit -> evaluation. Each returns a plain dict that
main.py prints.
"""

from pathlib import Path

import pandas as pd
from loguru import logger

from .config import CREDIT_SCHEMA, DatasetSchema, PipelineConfig
from .data_prep import filter_features, load_credit, load_expression, make_train_test_split
from .metrics import (
    evaluate_binary,
    evaluate_multinomial,
    majority_baseline,
    relevant_features,
    summarize_coefficients,
    top_features_per_class,
)
from .models import fit_logistic
from .scaling import standardize_partitions, unscale_coefficients
from .selection import select_model


def _prepare_features(
    X: pd.DataFrame, train_ids: pd.Index, test_ids: pd.Index, config: PipelineConfig
):
    """
    Variance filter and standardization, both learned on the rows named by
    ``config.scaling`` ("train" rows only, or "all" rows).
    """
    fit_rows = X.loc[train_ids] if config.scaling == "train" else X
    kept, dropped = filter_features(fit_rows, config.variance_threshold)
    X_train, X_test, scaler = standardize_partitions(
        X[kept.columns], train_ids, test_ids, scope=config.scaling
    )
    return X_train, X_test, scaler, dropped


def run_credit_pipeline(
    data_path: Path,
    config: PipelineConfig | None = None,
    schema: DatasetSchema = CREDIT_SCHEMA,
) -> dict:
    """Binary credit-risk run: logistic, ridge and lasso with train/test reports."""
    config = config or PipelineConfig()
    X, y = load_credit(data_path, schema)

    train_ids, test_ids = make_train_test_split(X, config.train_fraction, config.seed)
    y_train, y_test = y.loc[train_ids], y.loc[test_ids]
    X_train, X_test, scaler, dropped = _prepare_features(X, train_ids, test_ids, config)
    logger.info(f"Credit: {len(train_ids)} train / {len(test_ids)} test rows, {X_train.shape[1]} features")

    result = {
        "num_rows": len(X),
        "feature_count": X_train.shape[1],
        "train_size": len(train_ids),
        "test_size": len(test_ids),
        "positive_rate": float(y.mean()),
        "dropped": dropped,
        "scaling": config.scaling,
        "baseline": majority_baseline(y_train, y_test),
    }

    logistic = fit_logistic(X_train, y_train, family="none", max_iter=config.max_iter, tol=config.tol)
    coef = logistic.coefficients[logistic.positive_class]
    raw_intercept, raw_coef = unscale_coefficients(coef, logistic.intercepts[logistic.positive_class], scaler)
    result["logistic"] = {
        "model": logistic,
        "coefficients": raw_coef,
        "intercept": raw_intercept,
        "top_coefficients": summarize_coefficients(raw_coef, config.top_k),
        "train": evaluate_binary(logistic, X_train, y_train, config.decision_threshold),
        "test": evaluate_binary(logistic, X_test, y_test, config.decision_threshold),
    }

    for family in ("ridge", "lasso"):
        cv, model_min, model_1se = select_model(X_train, y_train, family, config)
        result[family] = {
            "cv": cv,
            "model": model_min,
            "train": evaluate_binary(model_min, X_train, y_train, config.decision_threshold),
            "test": evaluate_binary(model_min, X_test, y_test, config.decision_threshold),
            "relevant_features": relevant_features(model_1se, model_1se.positive_class, config.top_k),
        }
    return result


def run_genes_pipeline(
    data_path: Path,
    labels_path: Path,
    config: PipelineConfig | None = None,
) -> dict:
    """Multinomial tumour-class run: ridge and lasso, confusion matrices, top genes."""
    config = config or PipelineConfig()
    X, y = load_expression(data_path, labels_path)

    train_ids, test_ids = make_train_test_split(X, config.train_fraction, config.seed)
    y_train, y_test = y.loc[train_ids], y.loc[test_ids]
    X_train, X_test, scaler, dropped = _prepare_features(X, train_ids, test_ids, config)
    logger.info(f"Genes: {len(train_ids)} train / {len(test_ids)} test rows, {X_train.shape[1]} genes kept")

    result = {
        "num_samples": len(X),
        "gene_count": X.shape[1],
        "feature_count": X_train.shape[1],
        "class_counts": y.value_counts().sort_index().to_dict(),
        "train_size": len(train_ids),
        "test_size": len(test_ids),
        "dropped": dropped,
        "scaling": config.scaling,
        "degenerate": scaler.degenerate_,
    }

    for family in ("ridge", "lasso"):
        cv, model_min, model_1se = select_model(X_train, y_train, family, config)
        entry = {
            "cv": cv,
            "model": model_min,
            "train": evaluate_multinomial(model_min, X_train, y_train),
            "test": evaluate_multinomial(model_min, X_test, y_test),
        }
        if family == "lasso":
            entry["top_features"] = top_features_per_class(model_1se, config.top_k)
        result[family] = entry
    return result
