from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from glm_reports import (
    CREDIT_SCHEMA,
    ColumnSpec,
    DatasetSchema,
    assign_folds,
    filter_features,
    load_credit,
    load_expression,
    load_table,
    make_train_test_split,
    partition_indices,
)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def test_load_table_applies_schema_roles(credit_file):
    df = load_table(credit_file, CREDIT_SCHEMA)

    assert list(df.columns) == CREDIT_SCHEMA.names()
    assert len(df) == 200
    for name in CREDIT_SCHEMA.names("categorical"):
        assert isinstance(df[name].dtype, pd.CategoricalDtype)
    for name in CREDIT_SCHEMA.names("numeric"):
        assert df[name].dtype == float


def test_load_table_rejects_wrong_column_count(tmp_path):
    path = tmp_path / "short.data"
    path.write_text("A11 6 A34\nA12 12 A32\n")
    with pytest.raises(ValueError, match="expected 21 columns"):
        load_table(path, CREDIT_SCHEMA)


def test_load_table_rejects_text_in_numeric_column(tmp_path):
    schema = DatasetSchema(
        columns=[
            ColumnSpec(index=0, name="kind", role="categorical"),
            ColumnSpec(index=1, name="amount", role="numeric"),
        ]
    )
    path = tmp_path / "t.csv"
    path.write_text("kind,amount\na,1.5\nb,oops\n")
    with pytest.raises(ValueError, match="amount"):
        load_table(path, schema)


def test_load_table_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_table(tmp_path / "nope.data", CREDIT_SCHEMA)


def test_load_credit_encodes_target_and_dummies(credit_file):
    X, y = load_credit(credit_file)

    assert set(y.unique()) <= {0, 1}
    assert y.name == "bad"
    assert "credit_class" not in X.columns
    # first level dropped: A11 is the reference for checking_status
    assert "checking_status_A12" in X.columns
    assert "checking_status_A11" not in X.columns
    assert "duration" in X.columns
    assert all(dtype == float for dtype in X.dtypes)


def test_load_expression_aligns_labels(gene_files, expression_frames):
    data_path, labels_path = gene_files
    X, y = load_expression(data_path, labels_path)
    _, expected = expression_frames

    assert X.index.name == "sample"
    assert list(y.index) == list(X.index)
    assert (y.astype(str) == expected.loc[X.index]).all()
    assert isinstance(y.dtype, pd.CategoricalDtype)
    assert X.shape == (80, 30)


def test_load_expression_rejects_unlabeled_samples(tmp_path, expression_frames):
    data, y = expression_frames
    data.to_csv(tmp_path / "data.csv")
    y.iloc[:-1].to_frame().to_csv(tmp_path / "labels.csv")

    with pytest.raises(ValueError, match="1 unlabeled"):
        load_expression(tmp_path / "data.csv", tmp_path / "labels.csv")


# ---------------------------------------------------------------------------
# Feature filter
# ---------------------------------------------------------------------------

@pytest.fixture
def mixed_frame():
    rng = np.random.default_rng(5)
    return pd.DataFrame(
        {
            "signal": rng.normal(size=50),
            "constant": 5.0,
            "tiny": 1e-3 * rng.normal(size=50),
            "wide": rng.normal(scale=10, size=50),
            "name": ["x"] * 50,
        }
    )


def test_filter_removes_constant_column(mixed_frame):
    kept, dropped = filter_features(mixed_frame, threshold=0.001)

    assert "constant" not in kept.columns
    assert dropped["zero_variance"] == ["constant"]
    assert dropped["low_variance"] == ["tiny"]
    assert list(kept.columns) == ["signal", "wide", "name"]


def test_filter_retained_columns_satisfy_rules(mixed_frame):
    kept, dropped = filter_features(mixed_frame, threshold=0.001)
    numeric = kept.select_dtypes("number")

    assert (numeric.min() != numeric.max()).all()
    assert (numeric.var() >= 0.001).all()
    for col in dropped["zero_variance"]:
        assert mixed_frame[col].min() == mixed_frame[col].max()
    for col in dropped["low_variance"]:
        assert mixed_frame[col].var() < 0.001


def test_filter_is_idempotent(mixed_frame):
    once, _ = filter_features(mixed_frame)
    twice, dropped_again = filter_features(once)

    pd.testing.assert_frame_equal(once, twice)
    assert not any(dropped_again.values())


def test_filter_reports_undefined_variance():
    frame = pd.DataFrame({"empty": [np.nan, np.nan, np.nan], "ok": [1.0, 2.0, 3.0]})
    kept, dropped = filter_features(frame)

    assert dropped["undefined_variance"] == ["empty"]
    assert list(kept.columns) == ["ok"]


def test_filter_all_columns_removed_is_valid():
    frame = pd.DataFrame({"a": [1.0] * 4, "b": [2.0] * 4})
    kept, dropped = filter_features(frame)

    assert kept.shape == (4, 0)
    assert dropped["zero_variance"] == ["a", "b"]


# ---------------------------------------------------------------------------
# Partitioner
# ---------------------------------------------------------------------------

def test_partition_sizes_for_1000_rows():
    train, test = partition_indices(1000, 0.75, 1337)

    assert len(train) == 750
    assert len(test) == 250


def test_partition_is_disjoint_and_exhaustive():
    for n in (1, 7, 10, 333):
        train, test = partition_indices(n, 0.75, 1337)
        assert set(train).isdisjoint(test)
        assert set(train) | set(test) == set(range(n))
        assert len(train) == int(np.floor(0.75 * n))


def test_partition_is_deterministic_per_seed():
    a = partition_indices(1000, 0.75, 1337)
    b = partition_indices(1000, 0.75, 1337)
    c = partition_indices(1000, 0.75, 1338)

    np.testing.assert_array_equal(a[0], b[0])
    np.testing.assert_array_equal(a[1], b[1])
    assert not np.array_equal(a[0], c[0])


def test_partition_uses_only_the_given_generator():
    rng = np.random.default_rng(1337)
    first, _ = partition_indices(100, 0.75, rng)
    second, _ = partition_indices(100, 0.75, rng)
    fresh, _ = partition_indices(100, 0.75, 1337)

    np.testing.assert_array_equal(first, fresh)
    assert not np.array_equal(first, second)


def test_partition_rejects_bad_fraction():
    with pytest.raises(ValueError):
        partition_indices(10, 1.0, 1)


def test_make_train_test_split_returns_labels():
    frame = pd.DataFrame({"v": range(20)}, index=[f"r{i}" for i in range(20)])
    train_ids, test_ids = make_train_test_split(frame, 0.75, 1337)

    assert len(train_ids) == 15
    assert set(train_ids) | set(test_ids) == set(frame.index)


def test_assign_folds_balanced_and_seeded():
    folds = assign_folds(103, 10, 1337)
    counts = np.bincount(folds)

    assert len(counts) == 10
    assert counts.max() - counts.min() <= 1
    np.testing.assert_array_equal(folds, assign_folds(103, 10, 1337))


def test_assign_folds_rejects_too_many_folds():
    with pytest.raises(ValueError):
        assign_folds(3, 5, 1)
