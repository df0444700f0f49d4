"""Tests for the validate_template command-line script."""

import json
from pathlib import Path

import pytest

from scripts.validate_template import main
from src.templates.template import serialize_template


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


def _write(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "template.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestValidateTemplateScript:
    """Exit codes and report lines."""

    def test_valid_template(self, tmp_path: Path, valid_template, capsys) -> None:
        path = _write(tmp_path, serialize_template(valid_template))
        assert main([str(path)]) == 0
        out = capsys.readouterr().out
        assert "Name:    Brazil Specialty" in out
        assert "Origin:  Brazil" in out
        assert "RESULT: PASS" in out

    def test_invalid_template(self, tmp_path: Path, valid_template, capsys) -> None:
        payload = serialize_template(valid_template)
        payload["parameters"]["sample_size_grams"] = 0
        payload["parameters"]["max_quakers"] = -1
        path = _write(tmp_path, payload)
        assert main([str(path)]) == 1
        out = capsys.readouterr().out
        assert "! Sample size must be greater than 0" in out
        assert "! Max quakers cannot be negative" in out
        assert "RESULT: FAIL (2 errors)" in out

    def test_nan_sample_size_fails(self, tmp_path: Path, valid_template, capsys) -> None:
        payload = serialize_template(valid_template)
        payload["parameters"]["sample_size_grams"] = float("nan")
        path = _write(tmp_path, payload)
        assert main([str(path)]) == 1
        assert "! parameters.sample_size_grams:" in capsys.readouterr().out

    def test_warnings_printed(self, tmp_path: Path, valid_template, capsys) -> None:
        payload = serialize_template(valid_template)
        payload["parameters"]["defect_configuration"] = {
            "defects": [{"name": "Full Black", "category": "primary", "weight": 1}],
            "thresholds": {"max_primary": 8, "max_total": 5},
        }
        path = _write(tmp_path, payload)
        assert main([str(path)]) == 0
        out = capsys.readouterr().out
        assert "Warnings (1):" in out
        assert "max_total (5) is lower than max_primary (8)" in out

    def test_tolerance_flag(self, tmp_path: Path, valid_template, capsys) -> None:
        path = _write(tmp_path, serialize_template(valid_template))
        assert main(["--tolerance", "0.05", str(path)]) == 0

    def test_missing_file(self, tmp_path: Path, capsys) -> None:
        assert main([str(tmp_path / "absent.json")]) == 2
        assert "Cannot read" in capsys.readouterr().out

    def test_malformed_json(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert main([str(path)]) == 2

    def test_non_object_json(self, tmp_path: Path, capsys) -> None:
        assert main([str(_write(tmp_path, ["a", "b"]))]) == 2
        assert "must be an object" in capsys.readouterr().out
