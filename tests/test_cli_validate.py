from typer.testing import CliRunner

from atp_visualizer.cli import app


runner = CliRunner()


def test_cli_validate_success():
    r = runner.invoke(app, ["validate", "examples/basic.atp.json"])
    assert r.exit_code == 0
    assert "OK:" in r.stdout
    assert "Roots: design" in r.stdout


def test_cli_validate_failure():
    r = runner.invoke(app, ["validate", "examples/invalid-unknown-dep.atp.json"])
    assert r.exit_code == 2
    assert "ATP plan validation failed" in r.output
    assert "nodes.a.dependencies references unknown node 'b' in plan" in r.output


def test_cli_validate_invalid_json():
    r = runner.invoke(app, ["validate", "examples/invalid-json.atp.json"])
    assert r.exit_code == 2
    assert "Invalid JSON" in r.output


def test_cli_validate_missing_file():
    r = runner.invoke(app, ["validate", "examples/nope.atp.json"])
    assert r.exit_code == 1
    assert "Failed to read ATP plan" in r.output


def test_cli_validate_discovers_plan(tmp_path):
    plan = tmp_path / "plans" / "demo.atp.json"
    plan.parent.mkdir()
    plan.write_text(open("examples/basic.atp.json", encoding="utf-8").read(), encoding="utf-8")
    r = runner.invoke(app, ["validate", "--root", str(tmp_path)])
    assert r.exit_code == 0, r.output
    assert "Checkout revamp" in r.stdout


def test_cli_validate_no_plan_selected(tmp_path):
    r = runner.invoke(app, ["validate", "--root", str(tmp_path)])
    assert r.exit_code == 1
    assert "No ATP plan selected" in r.output


def test_cli_validate_unknown_format():
    r = runner.invoke(app, ["validate", "examples/basic.atp.json", "--format", "xml"])
    assert r.exit_code == 2
    assert "E_UNKNOWN_FORMAT" in r.output


def test_cli_validate_bad_config(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("colour: blue\n", encoding="utf-8")
    r = runner.invoke(app, ["validate", "examples/basic.atp.json", "--config", str(cfg)])
    assert r.exit_code == 2
    assert "E_CONFIG_FILE_INVALID" in r.output


def test_cli_validate_malformed_config_yaml(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("exclude_dirs: [unclosed\n", encoding="utf-8")
    r = runner.invoke(app, ["validate", "examples/basic.atp.json", "--config", str(cfg)])
    assert r.exit_code == 2
    assert "E_CONFIG_FILE_INVALID" in r.output


def test_cli_validate_unreadable_config(tmp_path):
    r = runner.invoke(app, ["validate", "examples/basic.atp.json", "--config", str(tmp_path)])
    assert r.exit_code == 2
    assert "E_CONFIG_FILE_INVALID" in r.output
