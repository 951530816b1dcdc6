from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from mageplan.core.data import (
    TABLE_COLUMNS,
    as_categorical,
    filter_table,
    load_table,
    normalization_residuals,
    save_table,
    validate_table,
)


def test_example_table_is_valid(example_table):
    assert list(example_table.columns) == TABLE_COLUMNS
    assert len(example_table) == 14 * 5 * 4
    assert validate_table(example_table, n_loci=3) == []
    assert (normalization_residuals(example_table) < 1e-9).all()


def test_load_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_table(tmp_path / "nope.csv")


def test_unsupported_format(tmp_path: Path):
    path = tmp_path / "table.xlsx"
    path.write_text("x", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported table format"):
        load_table(path)
    with pytest.raises(ValueError, match="Unsupported table format"):
        save_table(pd.DataFrame(), path)


def test_save_and_load_csv(tmp_path: Path, example_table):
    out = save_table(example_table, tmp_path / "sub" / "table.csv")
    back = load_table(out)
    pd.testing.assert_frame_equal(back, example_table)


def test_missing_columns():
    df = pd.DataFrame({"cycles": [1]})
    with pytest.raises(ValueError, match="missing required columns"):
        validate_table(df)
    problems = validate_table(df, strict=False)
    assert len(problems) == 1


def test_normalisation_violation(example_table):
    broken = example_table.copy()
    broken.loc[0, "prevalence"] = broken.loc[0, "prevalence"] + 0.01
    with pytest.raises(ValueError, match="does not sum to 1"):
        validate_table(broken)


def test_range_violations_collected_when_not_strict(example_table):
    broken = example_table.copy()
    broken["cycles"] = broken["cycles"].astype(object)
    broken["screenedColonies"] = broken["screenedColonies"].astype(float)
    broken.loc[0, "allelicReplacementFrequency"] = 1.5
    broken.loc[1, "screenedColonies"] = 0.5
    broken.loc[2, "cycles"] = "ten"
    problems = validate_table(broken, strict=False)
    joined = "\n".join(problems)
    assert "allelicReplacementFrequency" in joined
    assert "screenedColonies" in joined
    assert "'cycles' must be numeric" in joined


def test_k_beyond_loci(example_table):
    with pytest.raises(ValueError, match="exceeds n_loci=2"):
        validate_table(example_table, n_loci=2)


def test_nan_screening_is_allowed(example_table):
    df = example_table.copy()
    df["screenedColonies"] = df["screenedColonies"].astype(float)
    df.loc[0, "screenedColonies"] = np.nan
    assert validate_table(df) == []


def test_as_categorical(example_table):
    cat = as_categorical(example_table)
    assert isinstance(cat["cycles"].dtype, pd.CategoricalDtype)
    assert isinstance(cat["allelicReplacementFrequency"].dtype, pd.CategoricalDtype)
    assert list(cat["cycles"].cat.categories) == [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 15, 20, 25, 30]
    assert cat["cycles"].cat.ordered
    # Input is left untouched.
    assert not isinstance(example_table["cycles"].dtype, pd.CategoricalDtype)


def test_filter_table(example_table):
    cat = as_categorical(example_table)
    sub = filter_table(cat, cycles=[10], frequencies=[0.05])
    assert len(sub) == 4
    assert sub["numberOfReplacements"].tolist() == [0, 1, 2, 3]
    assert sub.loc[sub["numberOfReplacements"] == 3, "screenedColonies"].iloc[0] == 45

    only_k3 = filter_table(example_table, replacements=[3])
    assert len(only_k3) == 14 * 5
    assert len(filter_table(example_table)) == len(example_table)


def test_filter_out_of_range_is_empty(example_table):
    assert filter_table(example_table, cycles=[999]).empty
    assert filter_table(as_categorical(example_table), frequencies=[0.42]).empty
    assert filter_table(example_table, cycles=[]).empty


def test_save_and_load_parquet(tmp_path: Path, example_table):
    pytest.importorskip("pyarrow")
    out = save_table(example_table, tmp_path / "table.parquet")
    back = load_table(out)
    pd.testing.assert_frame_equal(back, example_table)
    assert validate_table(back, n_loci=3) == []
