# tests/conftest.py
from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from loguru import logger

from glm_reports import PipelineConfig

TUMOR_CLASSES = ["BRCA", "COAD", "KIRC", "LUAD", "PRAD"]


@pytest.fixture(autouse=True)
def disable_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


@pytest.fixture
def small_config() -> PipelineConfig:
    """Few folds and strengths so end-to-end runs stay fast."""
    return PipelineConfig(n_folds=3, n_lambda=4, lambda_min_ratio=0.05, top_k=2)


@pytest.fixture
def credit_file(tmp_path: Path) -> Path:
    """
    German-credit shaped file: 200 rows, 21 space-separated columns, no header.
    Bad credit (class 2) depends on duration and checking status.
    """
    rng = np.random.default_rng(0)
    n = 200

    def cat(prefix: int, k: int):
        return [f"A{prefix + i}" for i in rng.integers(0, k, size=n)]

    checking = cat(11, 4)
    duration = rng.integers(6, 61, size=n)
    logit = -1.0 + 0.05 * (duration - 20) + 1.2 * (np.array(checking) == "A11") - 1.0 * (
        np.array(checking) == "A14"
    )
    bad = rng.random(n) < 1.0 / (1.0 + np.exp(-logit))

    columns = [
        checking,
        duration,
        cat(30, 5),
        cat(40, 4),
        rng.integers(250, 15000, size=n),
        cat(61, 5),
        cat(71, 5),
        rng.integers(1, 5, size=n),
        cat(91, 4),
        cat(101, 3),
        rng.integers(1, 5, size=n),
        cat(121, 4),
        rng.integers(19, 76, size=n),
        cat(141, 3),
        cat(151, 3),
        rng.integers(1, 5, size=n),
        cat(171, 4),
        rng.integers(1, 3, size=n),
        cat(191, 2),
        cat(201, 2),
        np.where(bad, 2, 1),
    ]
    lines = [" ".join(str(col[i]) for col in columns) for i in range(n)]
    path = tmp_path / "german.data"
    path.write_text("\n".join(lines) + "\n")
    return path


def make_expression(n_per_class: int = 16, n_genes: int = 30, seed: int = 1):
    """Expression frame (samples x genes) and labels; genes 0-9 carry class signal."""
    rng = np.random.default_rng(seed)
    labels = np.repeat(TUMOR_CLASSES, n_per_class)
    n = len(labels)
    values = rng.normal(size=(n, n_genes))
    for g in range(10):
        values[:, g] += 2.0 * (labels == TUMOR_CLASSES[g % 5])
    values[:, n_genes - 2] = 5.0
    values[:, n_genes - 1] = 1e-3 * rng.normal(size=n)

    ids = [f"sample_{i}" for i in range(n)]
    data = pd.DataFrame(values, index=ids, columns=[f"gene_{g}" for g in range(n_genes)])
    y = pd.Series(labels, index=ids, name="Class")
    return data, y


@pytest.fixture
def expression_frames():
    return make_expression()


@pytest.fixture
def gene_files(tmp_path: Path, expression_frames) -> tuple[Path, Path]:
    """data.csv / labels.csv with an unnamed first column, labels in shuffled order."""
    data, y = expression_frames
    data_path = tmp_path / "data.csv"
    labels_path = tmp_path / "labels.csv"
    data.to_csv(data_path)
    y.to_frame().sample(frac=1.0, random_state=3).to_csv(labels_path)
    return data_path, labels_path


@pytest.fixture
def three_class_data():
    """Standardized-scale features with an informative signal for three classes."""
    rng = np.random.default_rng(7)
    y = np.repeat(["a", "b", "c"], 30)
    X = pd.DataFrame(rng.normal(size=(90, 6)), columns=[f"f{i}" for i in range(6)])
    X["f0"] += 1.5 * (y == "a")
    X["f1"] += 1.5 * (y == "b")
    return X, pd.Series(y)
