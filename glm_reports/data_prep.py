from __future__ import annotations

"""
Data preparation for the credit and gene-expression analyses: loading with an
explicit schema, variance filtering and seeded partitioning.
"""

from pathlib import Path

import numpy as np
import pandas as pd
from loguru import logger

from .config import CREDIT_SCHEMA, DatasetSchema
from .constants import (
    CREDIT_POSITIVE_CLASS,
    LABEL_COLUMN,
    RANDOM_SEED,
    SAMPLE_COLUMN,
    TRAIN_FRACTION,
    VARIANCE_THRESHOLD,
)


def _read_delimited(path: Path, **kwargs) -> pd.DataFrame:
    """pd.read_csv with input errors turned into descriptive exceptions."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Data file not found: {path}")
    try:
        return pd.read_csv(path, **kwargs)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ValueError(f"Malformed data file {path}: {exc}") from exc


def load_table(path: Path, schema: DatasetSchema) -> pd.DataFrame:
    """
    Read a delimited file and apply the schema: positional names, categorical
    columns as pandas categories, numeric columns as floats.
    """
    df = _read_delimited(path, sep=schema.sep, header=0 if schema.header else None)

    if df.shape[1] != len(schema.columns):
        raise ValueError(
            f"{path}: expected {len(schema.columns)} columns per schema, found {df.shape[1]}"
        )
    df.columns = schema.names()

    for spec in schema.ordered:
        col = df[spec.name]
        if spec.role == "categorical":
            df[spec.name] = col.astype("category")
            continue
        converted = pd.to_numeric(col, errors="coerce")
        bad = converted.isna() & col.notna()
        if bad.any():
            raise ValueError(
                f"{path}: numeric column '{spec.name}' has non-numeric values, "
                f"e.g. {col[bad].iloc[0]!r}"
            )
        df[spec.name] = converted.astype(float)

    logger.info(f"Loaded {path}: {df.shape[0]} rows, {df.shape[1]} columns")
    return df


def load_credit(
    path: Path,
    schema: DatasetSchema = CREDIT_SCHEMA,
    positive_class=CREDIT_POSITIVE_CLASS,
) -> tuple[pd.DataFrame, pd.Series]:
    """
    Credit design matrix and 0/1 target (1 = positive class, "bad" credit).

    Categorical columns are one-hot encoded with the first level dropped.
    """
    df = load_table(path, schema)
    if schema.target is None:
        raise ValueError("Credit schema must name a target column")

    target = df[schema.target].astype(str)
    if str(positive_class) not in set(target):
        logger.warning(f"Positive class {positive_class!r} never occurs in {schema.target}")
    y = (target == str(positive_class)).astype(int).rename("bad")

    features = df.drop(columns=[schema.target])
    categorical = [c for c in schema.names("categorical") if c != schema.target]
    X = pd.get_dummies(features, columns=categorical, drop_first=True, dtype=float)
    return X, y


def load_expression(data_path: Path, labels_path: Path) -> tuple[pd.DataFrame, pd.Series]:
    """
    Expression matrix indexed by sample id plus the categorical class label.
    Every sample must have exactly one label and vice versa.
    """
    data = _read_delimited(data_path)
    labels = _read_delimited(labels_path)
    if data.shape[1] < 2:
        raise ValueError(f"{data_path}: expected a sample column plus expression columns")
    data = data.rename(columns={data.columns[0]: SAMPLE_COLUMN})
    labels = labels.rename(columns={labels.columns[0]: SAMPLE_COLUMN})
    if LABEL_COLUMN not in labels.columns:
        raise ValueError(f"{labels_path}: missing label column '{LABEL_COLUMN}'")

    for name, frame in ((data_path, data), (labels_path, labels)):
        dupes = frame[SAMPLE_COLUMN][frame[SAMPLE_COLUMN].duplicated()].tolist()
        if dupes:
            raise ValueError(f"{name}: duplicate sample ids {dupes[:5]}")

    X = data.set_index(SAMPLE_COLUMN)
    label_series = labels.set_index(SAMPLE_COLUMN)[LABEL_COLUMN]

    unlabeled = X.index.difference(label_series.index).tolist()
    orphan = label_series.index.difference(X.index).tolist()
    if unlabeled or orphan:
        raise ValueError(
            f"Samples and labels do not match: {len(unlabeled)} unlabeled "
            f"(e.g. {unlabeled[:3]}), {len(orphan)} labels without data (e.g. {orphan[:3]})"
        )

    non_numeric = [c for c in X.columns if not pd.api.types.is_numeric_dtype(X[c])]
    if non_numeric:
        raise ValueError(f"{data_path}: non-numeric expression columns {non_numeric[:5]}")

    y = label_series.reindex(X.index).astype("category")
    logger.info(
        f"Loaded expression data: {X.shape[0]} samples, {X.shape[1]} genes, "
        f"{len(y.cat.categories)} classes"
    )
    return X.astype(float), y


def filter_features(
    X: pd.DataFrame, threshold: float = VARIANCE_THRESHOLD
) -> tuple[pd.DataFrame, dict[str, list]]:
    """
    Drop numeric columns that are constant (min == max), then those with sample
    variance below ``threshold``. Columns with undefined variance are dropped too
    and reported. Non-numeric columns are left alone.
    """
    numeric_cols = [c for c in X.columns if pd.api.types.is_numeric_dtype(X[c])]
    num = X[numeric_cols]
    variances = num.var()

    undefined_mask = variances.isna()
    zero_mask = ~undefined_mask & (num.min() == num.max())
    low_mask = ~undefined_mask & ~zero_mask & (variances < threshold)

    dropped = {
        "zero_variance": list(variances.index[zero_mask]),
        "low_variance": list(variances.index[low_mask]),
        "undefined_variance": list(variances.index[undefined_mask]),
    }
    if dropped["undefined_variance"]:
        logger.warning(f"Undefined variance, dropped: {dropped['undefined_variance'][:10]}")
    logger.info(
        f"Feature filter: {len(dropped['zero_variance'])} zero-variance, "
        f"{len(dropped['low_variance'])} below {threshold}"
    )

    to_drop = dropped["zero_variance"] + dropped["low_variance"] + dropped["undefined_variance"]
    return X.drop(columns=to_drop), dropped


def partition_indices(
    n_rows: int,
    train_fraction: float = TRAIN_FRACTION,
    rng: np.random.Generator | int | None = RANDOM_SEED,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Seeded permutation of 0..n_rows-1; the first floor(train_fraction * n_rows)
    positions are the training rows, the rest the test rows.
    """
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")
    rng = np.random.default_rng(rng)
    perm = rng.permutation(n_rows)
    n_train = int(np.floor(train_fraction * n_rows))
    return perm[:n_train], perm[n_train:]


def make_train_test_split(
    X: pd.DataFrame,
    train_fraction: float = TRAIN_FRACTION,
    random_state: np.random.Generator | int | None = RANDOM_SEED,
) -> tuple[pd.Index, pd.Index]:
    """Row-level split returning index labels for train and test."""
    train_pos, test_pos = partition_indices(len(X), train_fraction, random_state)
    return X.index[train_pos], X.index[test_pos]


def assign_folds(
    n_rows: int, n_folds: int, rng: np.random.Generator | int | None = RANDOM_SEED
) -> np.ndarray:
    """Fold id per row; fold sizes differ by at most one."""
    if n_folds < 2 or n_folds > n_rows:
        raise ValueError(f"Need 2 <= n_folds <= n_rows, got n_folds={n_folds}, n_rows={n_rows}")
    rng = np.random.default_rng(rng)
    return rng.permutation(np.arange(n_rows) % n_folds)
