from __future__ import annotations

import json
from pathlib import Path

from app_orchestrator.cli import main

from example_models import lamp_document


def write_model(tmp_path: Path, doc: dict) -> Path:
    path = tmp_path / "model.json"
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


def test_cli_prints_order_and_writes_report(tmp_path: Path, capsys):
    model = write_model(tmp_path, lamp_document())
    out_json = tmp_path / "catalog.json"

    rc = main([str(model), "--json", str(out_json), "--environment", "staging"])

    assert rc == 0
    out = capsys.readouterr().out
    assert "Lamp[foo]" in out
    assert out.index("ssh n1 puppet agent -otv") < out.index("ssh n2 puppet agent -otv")

    report = json.loads(out_json.read_text(encoding="utf-8"))
    assert report["environment"] == "staging"
    assert report["order"] == ["n1", "n2"]


def test_cli_reports_errors(tmp_path: Path, capsys):
    doc = lamp_document()
    doc["instances"][0]["arguments"] = {}
    model = write_model(tmp_path, doc)

    rc = main([str(model)])

    assert rc == 1
    assert "error:" in capsys.readouterr().err


def test_cli_command_template(tmp_path: Path, capsys):
    model = write_model(tmp_path, lamp_document())

    assert main([str(model), "--command-template", "mco deploy {node}", "--strict-producers"]) == 0
    assert "mco deploy n2" in capsys.readouterr().out
