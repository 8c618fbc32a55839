from __future__ import annotations

"""
Column-wise standardization with statistics learned on one table and applied
to others.
"""

import numpy as np
import pandas as pd
from loguru import logger


class Standardizer:
    """
    (x - mean) / sd per column, using the sample standard deviation.
    Columns with zero or undefined sd are only centred and listed in ``degenerate_``.
    """

    def __init__(self):
        self.mean_: pd.Series | None = None
        self.std_: pd.Series | None = None
        self.degenerate_: list[str] = []

    def fit(self, X: pd.DataFrame) -> "Standardizer":
        self.mean_ = X.mean()
        std = X.std()
        bad = std.isna() | (std == 0)
        self.degenerate_ = list(std.index[bad])
        if self.degenerate_:
            logger.warning(
                f"{len(self.degenerate_)} columns have zero or undefined sd, centring only: "
                f"{self.degenerate_[:10]}"
            )
        self.std_ = std.mask(bad, 1.0)
        self.mean_ = self.mean_.fillna(0.0)
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        if self.mean_ is None or self.std_ is None:
            raise RuntimeError("Standardizer is not fitted.")
        missing = self.mean_.index.difference(X.columns)
        if len(missing):
            raise ValueError(f"Columns seen at fit time are missing: {list(missing[:5])}")
        cols = self.mean_.index
        return (X[cols] - self.mean_) / self.std_

    def fit_transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return self.fit(X).transform(X)


def unscale_coefficients(
    coef: pd.Series, intercept: float, scaler: Standardizer
) -> tuple[float, pd.Series]:
    """
    Convert coefficients from standardized space back to original units.
    """
    scale = scaler.std_.reindex(coef.index)
    mean = scaler.mean_.reindex(coef.index)
    raw_coef = coef / scale
    raw_intercept = intercept - float(np.sum((mean / scale) * coef))
    return raw_intercept, raw_coef


def standardize_partitions(
    X: pd.DataFrame,
    train_ids: pd.Index,
    test_ids: pd.Index,
    scope: str = "train",
) -> tuple[pd.DataFrame, pd.DataFrame, Standardizer]:
    """
    Standardize both partitions. ``scope="train"`` learns mean/sd on the training
    rows only; ``scope="all"`` learns them on every row, which leaks test-set
    statistics into training.
    """
    scaler = Standardizer()
    if scope == "train":
        scaler.fit(X.loc[train_ids])
    elif scope == "all":
        logger.warning("Standardizing on all rows: test-set statistics leak into training")
        scaler.fit(X)
    else:
        raise ValueError(f"Unknown scaling scope: {scope}")

    X_train = scaler.transform(X.loc[train_ids])
    X_test = scaler.transform(X.loc[test_ids])
    return X_train.astype(np.float64), X_test.astype(np.float64), scaler
