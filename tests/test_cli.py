"""Tests for the molparse command line."""

from conftest import build_cif_text, build_pdb_text
from typer.testing import CliRunner

from molparse.cli import app
from molparse.core.manifest import Manifest

runner = CliRunner()


def test_info(pdb_file):
    result = runner.invoke(app, ["info", str(pdb_file)])
    assert result.exit_code == 0, result.output
    assert "entry_id: 1ABC" in result.output
    assert "method: X-RAY DIFFRACTION" in result.output
    assert "compound 1: PROTEASE LIGHT CHAIN [L]" in result.output


def test_info_unknown_format(tmp_path):
    path = tmp_path / "structure.xyz"
    path.write_text("nothing")
    result = runner.invoke(app, ["info", str(path)])
    assert result.exit_code != 0


def test_chains(cif_file):
    result = runner.invoke(app, ["chains", str(cif_file)])
    assert result.exit_code == 0, result.output
    assert "H\tB\tgroups=8\tatoms=22\tseqres=8\tmatched=7" in result.output
    assert "SEQRES IVGGQECK" in result.output


def test_chains_model_out_of_range(pdb_file):
    result = runner.invoke(app, ["chains", str(pdb_file), "--model", "3"])
    assert result.exit_code != 0


def test_chains_with_ceiling(pdb_file):
    result = runner.invoke(app, ["chains", str(pdb_file), "--ca-threshold", "10"])
    assert result.exit_code == 0, result.output
    assert "L\tL\tgroups=3\tatoms=3\tseqres=0" in result.output


def test_summary_writes_manifest(tmp_path):
    (tmp_path / "1abc.cif").write_text(build_cif_text())
    (tmp_path / "2xyz.cif").write_text(build_cif_text(models=2).replace("1ABC", "2XYZ"))
    (tmp_path / "broken.cif").write_text("")
    out = tmp_path / "manifest.csv"
    result = runner.invoke(app, ["summary", str(tmp_path), "--pattern", "*.cif", "--out", str(out)])
    assert result.exit_code == 0, result.output
    m = Manifest.load(out)
    assert sorted(m.df["entry_id"]) == ["1ABC", "2XYZ"]
    assert "parsed=2\tfailed=1" in result.output


def test_summary_prints_rows(tmp_path):
    (tmp_path / "1abc.pdb").write_text(build_pdb_text())
    result = runner.invoke(app, ["summary", str(tmp_path), "--pattern", "*.pdb"])
    assert result.exit_code == 0, result.output
    assert "1ABC\tX-RAY DIFFRACTION\t2.4\t2\t31" in result.output


def test_summary_reports_ceilings(tmp_path, caplog):
    (tmp_path / "1abc.pdb").write_text(build_pdb_text())
    result = runner.invoke(app, ["summary", str(tmp_path), "--pattern", "*.pdb", "--ca-threshold", "10"])
    assert result.exit_code == 0, result.output
    assert "parsed=1\tfailed=0" in result.output
    assert "1 structures reduced to CA atoms, 0 truncated" in caplog.text
