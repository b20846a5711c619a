from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from jakarta_readiness.cli import app

POM = """<project xmlns="http://maven.apache.org/POM/4.0.0">
  <groupId>com.acme</groupId>
  <artifactId>shop</artifactId>
  <version>1.0.0</version>
  <dependencies>
    <dependency>
      <groupId>javax.servlet</groupId>
      <artifactId>javax.servlet-api</artifactId>
      <version>4.0.1</version>
    </dependency>
    <dependency>
      <groupId>javax.xml.rpc</groupId>
      <artifactId>javax.xml.rpc-api</artifactId>
      <version>1.1.2</version>
    </dependency>
  </dependencies>
</project>
"""

runner = CliRunner()


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("JREADY_MAVEN_REPO", str(tmp_path / "m2"))
    monkeypatch.setenv("JREADY_GRADLE_CACHE", str(tmp_path / "gradle"))
    root = tmp_path / "shop"
    root.mkdir()
    (root / "pom.xml").write_text(POM, encoding="utf-8")
    return root


def test_analyze_json(project: Path) -> None:
    result = runner.invoke(app, ["analyze", str(project), "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["namespace_map"]["javax.servlet:javax.servlet-api:4.0.1"] == "JAVAX"
    assert [b["type"] for b in data["blockers"]] == ["NO_JAKARTA_VERSION"]
    assert data["recommendations"][0]["recommended_artifact"]["group_id"] == "jakarta.servlet"
    assert data["readiness_score"]["score"] == 0.0


def test_analyze_table_with_tree(project: Path) -> None:
    result = runner.invoke(app, ["analyze", str(project), "--tree"])

    assert result.exit_code == 0, result.output
    assert "javax.xml.rpc-api" in result.output


def test_blockers_json(project: Path) -> None:
    result = runner.invoke(app, ["blockers", str(project), "--json"])

    assert result.exit_code == 0, result.output
    found = json.loads(result.output)
    assert len(found) == 1
    assert found[0]["artifact"]["artifact_id"] == "javax.xml.rpc-api"
    assert found[0]["confidence"] == 1.0
    assert result.output.startswith("[\n  {")


def test_blockers_json_when_nothing_blocks(project: Path) -> None:
    (project / "pom.xml").write_text(POM.replace("javax.xml.rpc", "jakarta.xml.rpc"), encoding="utf-8")

    result = runner.invoke(app, ["blockers", str(project), "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == []


def test_flag_unresolved_adds_blockers(project: Path) -> None:
    result = runner.invoke(app, ["blockers", str(project), "--json", "--flag-unresolved"])

    assert result.exit_code == 0, result.output
    assert sorted(b["type"] for b in json.loads(result.output)) == ["NO_JAKARTA_VERSION", "VERSION_INCOMPATIBLE"]


def test_conflicts_without_conflicts(project: Path) -> None:
    result = runner.invoke(app, ["conflicts", str(project), "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["conflicts"] == []
    assert data["summary"] == "No transitive conflicts found"


def test_plan_json_with_scan_summary(project: Path, tmp_path: Path) -> None:
    scan = tmp_path / "scan.json"
    scan.write_text(
        json.dumps({"files_scanned": 20, "files_with_javax_usage": 4, "import_counts": {"javax.servlet": 4}}),
        encoding="utf-8",
    )

    result = runner.invoke(app, ["plan", str(project), "--json", "--scan-summary", str(scan)])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert [p["phase_number"] for p in data["phases"]] == [1, 2, 3]
    assert data["phases"][0]["artifacts"][0]["artifact_id"] == "javax.xml.rpc-api"
    assert data["total_file_count"] == 1 + 4


def test_plan_rejects_bad_scan_summary(project: Path, tmp_path: Path) -> None:
    scan = tmp_path / "scan.json"
    scan.write_text('{"files_scanned": -1}', encoding="utf-8")

    result = runner.invoke(app, ["plan", str(project), "--scan-summary", str(scan)])

    assert result.exit_code == 1
    assert "Invalid scan summary" in result.output


def test_missing_project_exits_with_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["analyze", str(tmp_path / "nowhere")])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_invalid_environment_exits_with_error(project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JREADY_MAX_WORKERS", "0")

    result = runner.invoke(app, ["analyze", str(project)])

    assert result.exit_code == 1
    assert "JREADY_MAX_WORKERS" in result.output
