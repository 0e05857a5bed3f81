"""Tests for the run and check commands."""

import tomllib
from pathlib import Path

import pytest
from typer.testing import CliRunner

from datarail._cli.main import app

runner = CliRunner()

BILL_SCRIPT = """
import datarail as dr

bill_definition = dr.OperationDefinition("bill")
bill_definition.declare_many("total", "tax", "tip")


@bill_definition.cell()
def subtotal(prices):
    return sum(prices)


def compute_tax(subtotal, tax_rate):
    if tax_rate < 0:
        return dr.Failure(reason="negative tax rate")
    return subtotal * tax_rate


bill = bill_definition.instantiate(
    total=lambda subtotal, tax, tip: subtotal + tax + tip,
    tax=compute_tax,
    tip=lambda subtotal, tip_rate: subtotal * tip_rate,
)
"""


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A working directory holding a bill operation script and an input bag.

    The script is named after the test directory so each test imports a fresh module.
    """
    (tmp_path / f"{tmp_path.name}.py").write_text(BILL_SCRIPT)
    (tmp_path / "input.toml").write_text("prices = [50, 25, 25]\ntax_rate = 0.05\ntip_rate = 0.15\n")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _script(workspace: Path) -> str:
    return str(workspace / f"{workspace.name}.py")


def _read_toml(path: Path) -> dict:
    with path.open("rb") as f:
        return tomllib.load(f)


class TestRunCommand:
    def test_writes_evaluated_bag(self, workspace: Path) -> None:
        output = workspace / "out" / "bill.toml"

        result = runner.invoke(app, ["run", _script(workspace), "-i", "input.toml", "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert "Evaluation complete" in result.output
        data = _read_toml(output)
        assert data["subtotal"] == 100
        assert data["total"] == pytest.approx(120)
        assert data["prices"] == [50, 25, 25]

    def test_failures_are_exported(self, workspace: Path) -> None:
        (workspace / "input.toml").write_text("prices = [100]\ntax_rate = -1.0\ntip_rate = 0.1\n")
        output = workspace / "bill.toml"

        result = runner.invoke(app, ["run", _script(workspace), "-i", "input.toml", "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert "with failures" in result.output
        data = _read_toml(output)
        assert data["tax"]["__failure__"] is True
        assert data["tax"]["reason"] == "negative tax rate"
        assert "total" not in data

    def test_check_failures_sets_exit_code(self, workspace: Path) -> None:
        (workspace / "input.toml").write_text("prices = [100]\ntax_rate = -1.0\ntip_rate = 0.1\n")

        result = runner.invoke(
            app,
            ["run", _script(workspace), "-i", "input.toml", "-o", "bill.toml", "--check-failures"],
        )

        assert result.exit_code == 1
        assert (workspace / "bill.toml").exists()

    def test_missing_input_value(self, workspace: Path) -> None:
        (workspace / "input.toml").write_text("prices = [100]\ntip_rate = 0.1\n")

        result = runner.invoke(app, ["run", _script(workspace), "-i", "input.toml", "-o", "bill.toml"])

        assert result.exit_code == 1
        assert "missing 'tax_rate'" in result.output
        assert not (workspace / "bill.toml").exists()

    def test_requires_input_and_output(self, workspace: Path) -> None:
        result = runner.invoke(app, ["run", _script(workspace), "-i", "input.toml"])

        assert result.exit_code == 1
        assert "input and an output" in result.output

    def test_uses_configured_operation_and_paths(self, workspace: Path) -> None:
        (workspace / "pyproject.toml").write_text(
            f"""
[tool.datarail]
operation = {{ script = "{workspace.name}.py", name = "bill" }}
input = "input.toml"
output = "results/bill.toml"
""",
        )

        result = runner.invoke(app, ["run"])

        assert result.exit_code == 0, result.output
        assert _read_toml(workspace / "results" / "bill.toml")["tip"] == pytest.approx(15)

    def test_second_run_over_output_keeps_values(self, workspace: Path) -> None:
        first = runner.invoke(app, ["run", _script(workspace), "-i", "input.toml", "-o", "bill.toml"])
        assert first.exit_code == 0, first.output

        second = runner.invoke(app, ["run", _script(workspace), "-i", "bill.toml", "-o", "again.toml"])

        assert second.exit_code == 0, second.output
        assert _read_toml(workspace / "again.toml") == _read_toml(workspace / "bill.toml")


class TestCheckCommand:
    def test_shows_evaluation_order(self, workspace: Path) -> None:
        result = runner.invoke(app, ["check", _script(workspace), "--var", "bill"])

        assert result.exit_code == 0, result.output
        assert "Operation is valid" in result.output
        for name in ("subtotal", "tax", "tip", "total"):
            assert name in result.output

    def test_definition_without_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        script = tmp_path / f"{tmp_path.name}.py"
        script.write_text(
            """
import datarail as dr

booking = dr.OperationDefinition("booking")
booking.declare_many("order")
booking.declare("receipt", lambda order: order)
""",
        )
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["check", str(script)])

        assert result.exit_code == 0, result.output
        assert "bag value required" in result.output

    def test_cycle_is_reported(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        script = tmp_path / f"{tmp_path.name}.py"
        script.write_text(
            """
import datarail as dr

loop = dr.OperationDefinition("loop")
loop.declare("a", lambda b: b)
loop.declare("b", lambda a: a)
""",
        )
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["check", str(script)])

        assert result.exit_code == 1
        assert "Cycle detected" in result.output

    def test_without_target_or_config(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "pyproject.toml").write_text("[project]\nname = 'empty'\n")
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 1
        assert "No operation given" in result.output

    def test_invalid_config(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "pyproject.toml").write_text('[tool.datarail]\noperation = "no_colon"\n')
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 1
        assert "Invalid module path" in result.output
