"""
Regularized logistic models for the credit-risk and gene-expression analyses.

This package contains data preparation helpers (schema-driven loading, variance
filtering, standardization, seeded partitioning), cross-validated ridge/lasso
model selection, and evaluation utilities used by main.py.
"""

from .config import CREDIT_SCHEMA, ColumnSpec, DatasetSchema, PipelineConfig
from .constants import DECISION_THRESHOLD, RANDOM_SEED, TRAIN_FRACTION, VARIANCE_THRESHOLD
from .data_prep import (
    assign_folds,
    filter_features,
    load_credit,
    load_expression,
    load_table,
    make_train_test_split,
    partition_indices,
)
from .metrics import (
    compute_classification_metrics,
    evaluate_binary,
    evaluate_multinomial,
    relevant_features,
    summarize_coefficients,
    top_features_per_class,
)
from .models import FittedModel, fit_logistic, lambda_grid
from .scaling import Standardizer
from .selection import CVResult, cross_validate, select_model

__all__ = [
    "CREDIT_SCHEMA",
    "ColumnSpec",
    "DatasetSchema",
    "PipelineConfig",
    "DECISION_THRESHOLD",
    "RANDOM_SEED",
    "TRAIN_FRACTION",
    "VARIANCE_THRESHOLD",
    "assign_folds",
    "filter_features",
    "load_credit",
    "load_expression",
    "load_table",
    "make_train_test_split",
    "partition_indices",
    "compute_classification_metrics",
    "evaluate_binary",
    "evaluate_multinomial",
    "relevant_features",
    "summarize_coefficients",
    "top_features_per_class",
    "FittedModel",
    "fit_logistic",
    "lambda_grid",
    "Standardizer",
    "CVResult",
    "cross_validate",
    "select_model",
]
