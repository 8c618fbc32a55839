from __future__ import annotations

"""
Run configuration and explicit column schemas.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .constants import (
    CREDIT_COLUMNS,
    CREDIT_TARGET,
    DECISION_THRESHOLD,
    N_FOLDS,
    N_LAMBDA,
    RANDOM_SEED,
    TOP_K_FEATURES,
    TRAIN_FRACTION,
    VARIANCE_THRESHOLD,
)


class ColumnSpec(BaseModel):
    """One input column: file position, name and role."""
    index: int = Field(..., ge=0)
    name: str
    role: Literal["categorical", "numeric"]


class DatasetSchema(BaseModel):
    """Positional schema applied once at load time."""
    columns: List[ColumnSpec]
    sep: str = ","
    header: bool = True
    target: Optional[str] = None

    @model_validator(mode="after")
    def _check_columns(self) -> "DatasetSchema":
        indices = sorted(c.index for c in self.columns)
        if indices != list(range(len(self.columns))):
            raise ValueError(f"Column indices must be 0..{len(self.columns) - 1}, got {indices}")
        names = [c.name for c in self.columns]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate column names in schema: {dupes}")
        if self.target is not None and self.target not in names:
            raise ValueError(f"Target '{self.target}' is not a schema column")
        return self

    @property
    def ordered(self) -> List[ColumnSpec]:
        return sorted(self.columns, key=lambda c: c.index)

    def names(self, role: Optional[str] = None) -> List[str]:
        return [c.name for c in self.ordered if role is None or c.role == role]


class PipelineConfig(BaseModel):
    """Knobs shared by both analyses; defaults are the values used for both reports."""
    seed: int = RANDOM_SEED
    train_fraction: float = Field(TRAIN_FRACTION, gt=0.0, lt=1.0)
    variance_threshold: float = Field(VARIANCE_THRESHOLD, ge=0.0)
    n_folds: int = Field(N_FOLDS, ge=2)
    decision_threshold: float = Field(DECISION_THRESHOLD, gt=0.0, lt=1.0)
    scaling: Literal["train", "all"] = "train"
    n_lambda: int = Field(N_LAMBDA, ge=1)
    lambda_min_ratio: Optional[float] = Field(None, gt=0.0, lt=1.0)
    cv_measure: Literal["deviance", "class"] = "deviance"
    max_iter: int = Field(5000, ge=1)
    tol: float = Field(1e-4, gt=0.0)
    n_jobs: int = 1
    top_k: int = Field(TOP_K_FEATURES, ge=1)


CREDIT_SCHEMA = DatasetSchema(
    columns=[
        ColumnSpec(index=i, name=name, role=role)
        for i, (name, role) in enumerate(CREDIT_COLUMNS)
    ],
    sep=r"\s+",
    header=False,
    target=CREDIT_TARGET,
)
