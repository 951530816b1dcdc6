from pathlib import Path

from typer.testing import CliRunner

from mageplan.cli import app


runner = CliRunner()


def test_predict():
    res = runner.invoke(app, ["predict", "--loci", "3", "--frequency", "0.05", "--cycles", "10"])
    assert res.exit_code == 0, res.output
    assert "0.401263" in res.output
    assert "45" in res.output


def test_predict_rejects_bad_frequency():
    res = runner.invoke(app, ["predict", "--loci", "3", "--frequency", "1.5", "--cycles", "10"])
    assert res.exit_code == 1
    assert "Replacement frequency" in res.output


def test_cycles_needed():
    res = runner.invoke(
        app, ["cycles-needed", "--loci", "3", "--frequency", "0.05", "--target", "0.0646"]
    )
    assert res.exit_code == 0, res.output
    assert "10 cycles" in res.output

    res = runner.invoke(
        app,
        ["cycles-needed", "--loci", "3", "--frequency", "0.01", "--target", "0.9", "--k", "1", "--max-cycles", "20"],
    )
    assert res.exit_code == 1


def test_build_and_validate_table(tmp_path: Path, example_config_path: Path):
    out = tmp_path / "table.csv"
    res = runner.invoke(app, ["build-table", "--config", str(example_config_path), "--output", str(out)])
    assert res.exit_code == 0, res.output
    assert out.exists()

    res = runner.invoke(app, ["validate-table", str(out), "--n-loci", "3"])
    assert res.exit_code == 0, res.output
    assert "validated" in res.output


def test_validate_table_reports_problems(example_table_path: Path):
    res = runner.invoke(app, ["validate-table", str(example_table_path), "--n-loci", "2"])
    assert res.exit_code == 1
    assert "Invalid table" in res.output


def test_validate_table_missing_file(tmp_path: Path):
    res = runner.invoke(app, ["validate-table", str(tmp_path / "nope.csv")])
    assert res.exit_code == 1
    assert isinstance(res.exception, SystemExit)
    assert "found" in res.output


def test_show_filters_rows(example_table_path: Path):
    res = runner.invoke(app, ["show", str(example_table_path), "--cycles", "10", "--frequency", "0.05"])
    assert res.exit_code == 0, res.output
    assert "45" in res.output

    res = runner.invoke(app, ["show", str(example_table_path), "--cycles", "999"])
    assert res.exit_code == 0
    assert "No rows match" in res.output


def test_show_unsupported_format(tmp_path: Path):
    path = tmp_path / "t.xlsx"
    path.write_text("x", encoding="utf-8")
    res = runner.invoke(app, ["show", str(path)])
    assert res.exit_code == 1
    assert isinstance(res.exception, SystemExit)
    assert "Unsupported" in res.output


def test_plot_commands(tmp_path: Path, example_config_path: Path, example_table_path: Path):
    for kind in ("prevalence", "screening"):
        res = runner.invoke(
            app,
            [
                "plot",
                kind,
                "--config",
                str(example_config_path),
                "--data",
                str(example_table_path),
                "--cycles",
                "1",
                "--cycles",
                "10",
                "--out-dir",
                str(tmp_path),
            ],
        )
        assert res.exit_code == 0, res.output
        assert (tmp_path / f"mage_3loci_{kind}.png").exists()


def test_plot_rejects_table_without_required_columns(tmp_path: Path, example_config_path: Path):
    bad = tmp_path / "bad.csv"
    bad.write_text("a,b\n1,2\n", encoding="utf-8")
    for kind in ("prevalence", "screening"):
        res = runner.invoke(
            app,
            ["plot", kind, "--config", str(example_config_path), "--data", str(bad), "--out-dir", str(tmp_path)],
        )
        assert res.exit_code == 1
        assert isinstance(res.exception, SystemExit)
        assert "missing" in res.output
    assert not list(tmp_path.glob("*.png"))
