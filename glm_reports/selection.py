from __future__ import annotations

"""
K-fold cross-validation over a regularization path with lambda.min /
lambda.1se selection.
"""

import warnings
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from loguru import logger
from sklearn.exceptions import ConvergenceWarning

from .config import PipelineConfig
from .constants import N_FOLDS, PROB_CLIP, RANDOM_SEED
from .data_prep import assign_folds
from .models import FittedModel, fit_logistic, lambda_grid


@dataclass
class CVResult:
    """
    Outcome of cross-validating one family over a strength grid.

    ``path`` is indexed by strength (descending) and only holds candidates that
    fitted everywhere; ``excluded`` maps the others to the reason.
    ``class_errors`` is long-format (lambda, fold, class, n, error) with NaN error
    where a class is absent from the held-out fold.
    """

    family: str
    measure: str
    lambdas: np.ndarray
    path: pd.DataFrame
    fold_errors: pd.DataFrame
    class_errors: pd.DataFrame
    lambda_min: float
    lambda_1se: float
    models: dict = field(repr=False)
    excluded: dict = field(default_factory=dict)
    warnings: list = field(default_factory=list)

    @property
    def model_min(self) -> FittedModel:
        return self.models[self.lambda_min]

    @property
    def model_1se(self) -> FittedModel:
        return self.models[self.lambda_1se]

    def class_fold_errors(self, strength: float | None = None) -> pd.DataFrame:
        """Folds x classes error table at one strength (default lambda_min)."""
        strength = self.lambda_min if strength is None else strength
        rows = self.class_errors[np.isclose(self.class_errors["lambda"], strength)]
        return rows.pivot(index="fold", columns="class", values="error")

    def summary(self) -> dict:
        return {
            "family": self.family,
            "measure": self.measure,
            "lambda_min": self.lambda_min,
            "lambda_1se": self.lambda_1se,
            "cvm_min": float(self.path.at[self.lambda_min, "cvm"]),
            "cvm_1se": float(self.path.at[self.lambda_1se, "cvm"]),
            "nzero_min": int(self.path.at[self.lambda_min, "nzero"]),
            "nzero_1se": int(self.path.at[self.lambda_1se, "nzero"]),
            "candidates": len(self.lambdas),
            "excluded": len(self.excluded),
            "warnings": len(self.warnings),
        }


def _try_fit(X, y, family, strength, max_iter, tol) -> tuple[FittedModel | None, str | None]:
    """Fit one candidate; non-convergence and invalid fits come back as a reason."""
    with warnings.catch_warnings():
        warnings.simplefilter("error", category=ConvergenceWarning)
        try:
            return fit_logistic(X, y, family, strength, max_iter=max_iter, tol=tol), None
        except ConvergenceWarning as exc:
            return None, f"did not converge: {exc}"
        except ValueError as exc:
            return None, f"fit failed: {exc}"


def _row_errors(proba: np.ndarray, y: np.ndarray, classes: list, measure: str) -> np.ndarray:
    true_idx = pd.Index(classes).get_indexer(y)
    if measure == "deviance":
        p_true = np.clip(proba[np.arange(len(y)), true_idx], PROB_CLIP, 1 - PROB_CLIP)
        return -2.0 * np.log(p_true)
    if measure == "class":
        return (proba.argmax(axis=1) != true_idx).astype(float)
    raise ValueError(f"Unknown CV measure: {measure}")


def _score_fold(X, y, fold_ids, fold, lambdas, family, classes, measure, max_iter, tol):
    """Fit every candidate without ``fold`` and score it on ``fold``."""
    held = fold_ids == fold
    X_train, y_train = X.iloc[~held], y[~held]
    X_held, y_held = X.iloc[held], y[held]

    errors = {}
    class_rows = []
    for lam in lambdas:
        model, reason = _try_fit(X_train, y_train, family, lam, max_iter, tol)
        if model is None:
            errors[lam] = (np.nan, reason)
            continue
        proba = model.predict_proba(X_held).reindex(columns=classes, fill_value=0.0)
        per_row = _row_errors(proba.to_numpy(), y_held, classes, measure)
        errors[lam] = (float(per_row.mean()), None)
        for c in classes:
            mask = y_held == c
            n_c = int(mask.sum())
            class_rows.append(
                {
                    "lambda": lam,
                    "fold": fold,
                    "class": c,
                    "n": n_c,
                    "error": float(per_row[mask].mean()) if n_c else np.nan,
                }
            )
    return fold, errors, class_rows


def _fold_warnings(y: np.ndarray, fold_ids: np.ndarray, classes: list) -> list[str]:
    found = []
    for fold in np.unique(fold_ids):
        held = fold_ids == fold
        for c in classes:
            if not (y[held] == c).any():
                found.append(f"fold {fold}: class {c!r} absent from held-out rows, per-class error undefined")
            if not (y[~held] == c).any():
                found.append(f"fold {fold}: class {c!r} absent from training rows")
    return found


def cross_validate(
    X: pd.DataFrame,
    y,
    family: str = "lasso",
    lambdas=None,
    n_folds: int = N_FOLDS,
    rng: np.random.Generator | int | None = RANDOM_SEED,
    measure: str = "deviance",
    n_lambda: int = 30,
    lambda_min_ratio: float | None = None,
    max_iter: int = 5000,
    tol: float = 1e-4,
    n_jobs: int = 1,
) -> CVResult:
    """
    Fit the full path on all rows, then score every candidate strength on each
    held-out fold and pick lambda_min / lambda_1se from the fold-weighted mean
    error and its standard error.
    """
    if not isinstance(X, pd.DataFrame):
        X = pd.DataFrame(np.asarray(X, dtype=float))
    y_arr = np.asarray(y)
    classes = np.unique(y_arr).tolist()
    if len(classes) < 2:
        raise ValueError(f"Need at least two classes, got {classes}")

    if lambdas is None:
        lambdas = lambda_grid(X, y_arr, family, n_lambda=n_lambda, min_ratio=lambda_min_ratio)
    lambdas = np.sort(np.asarray(lambdas, dtype=float))[::-1]
    if (lambdas < 0).any():
        raise ValueError("Regularization strengths must be non-negative")
    candidates = [float(lam) for lam in lambdas]

    excluded: dict[float, str] = {}
    models: dict[float, FittedModel] = {}
    for lam in candidates:
        model, reason = _try_fit(X, y_arr, family, lam, max_iter, tol)
        if model is None:
            excluded[lam] = f"full data: {reason}"
        else:
            models[lam] = model

    fold_ids = assign_folds(len(y_arr), n_folds, rng)
    cv_warnings = _fold_warnings(y_arr, fold_ids, classes)
    for msg in cv_warnings:
        logger.warning(f"[{family}] {msg}")

    survivors = [lam for lam in candidates if lam not in excluded]
    results = Parallel(n_jobs=n_jobs)(
        delayed(_score_fold)(X, y_arr, fold_ids, k, survivors, family, classes, measure, max_iter, tol)
        for k in range(n_folds)
    )

    fold_errors = pd.DataFrame(np.nan, index=pd.Index(survivors, name="lambda"), columns=range(n_folds))
    class_rows = []
    for fold, errors, rows in results:
        class_rows.extend(rows)
        for lam, (err, reason) in errors.items():
            if reason is not None:
                excluded.setdefault(lam, f"fold {fold}: {reason}")
            fold_errors.at[lam, fold] = err

    for lam, reason in excluded.items():
        logger.warning(f"[{family}] lambda={lam:.6g} excluded ({reason})")
    survivors = [lam for lam in survivors if lam not in excluded]
    if not survivors:
        raise RuntimeError(f"[{family}] every candidate strength failed to fit")
    fold_errors = fold_errors.loc[survivors]

    weights = np.bincount(fold_ids, minlength=n_folds).astype(float)
    errs = fold_errors.to_numpy()
    cvm = errs @ weights / weights.sum()
    cvsd = np.sqrt(((errs - cvm[:, None]) ** 2) @ weights / weights.sum() / (n_folds - 1))

    path = pd.DataFrame(
        {
            "cvm": cvm,
            "cvsd": cvsd,
            "cvup": cvm + cvsd,
            "cvlo": cvm - cvsd,
            "nzero": [models[lam].nonzero_count() for lam in survivors],
        },
        index=pd.Index(survivors, name="lambda"),
    )

    best = path["cvm"].min()
    lambda_min = float(path.index[path["cvm"] <= best].max())
    threshold = path.at[lambda_min, "cvup"]
    lambda_1se = float(path.index[path["cvm"] <= threshold].max())
    logger.info(
        f"[{family}] lambda_min={lambda_min:.6g} (cvm={best:.4f}), lambda_1se={lambda_1se:.6g}, "
        f"{len(excluded)} of {len(candidates)} candidates excluded"
    )

    class_errors = pd.DataFrame(class_rows, columns=["lambda", "fold", "class", "n", "error"])
    class_errors = class_errors[class_errors["lambda"].isin(survivors)].reset_index(drop=True)

    return CVResult(
        family=family,
        measure=measure,
        lambdas=lambdas,
        path=path,
        fold_errors=fold_errors,
        class_errors=class_errors,
        lambda_min=lambda_min,
        lambda_1se=lambda_1se,
        models={lam: models[lam] for lam in survivors},
        excluded=excluded,
        warnings=cv_warnings,
    )


def select_model(
    X: pd.DataFrame,
    y,
    family: str,
    config: PipelineConfig | None = None,
    rng: np.random.Generator | int | None = None,
) -> tuple[CVResult, FittedModel, FittedModel]:
    """Cross-validate ``family`` with config settings; returns (cv, lambda_min model, lambda_1se model)."""
    config = config or PipelineConfig()
    cv = cross_validate(
        X,
        y,
        family=family,
        n_folds=config.n_folds,
        rng=config.seed if rng is None else rng,
        measure=config.cv_measure,
        n_lambda=config.n_lambda,
        lambda_min_ratio=config.lambda_min_ratio,
        max_iter=config.max_iter,
        tol=config.tol,
        n_jobs=config.n_jobs,
    )
    return cv, cv.model_min, cv.model_1se
