"""Reading the `[tool.datarail]` table of pyproject.toml.

Example:
    [tool.datarail]
    operation = { script = "examples/bill.py", name = "bill" }
    input = "examples/bill_input.toml"
    output = "examples/bill_output.toml"

`operation` may also be a "module.path:variable" string. Relative paths are
taken from the directory holding pyproject.toml.
"""

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_SECTION = "[tool.datarail]"


class ConfigError(Exception):
    """Invalid datarail configuration."""


@dataclass(slots=True, frozen=True)
class ScriptSource:
    """A Python file holding the operation, and optionally its variable name."""

    script: Path
    name: str | None = None


@dataclass(slots=True, frozen=True)
class ModuleSource:
    """An importable "module.path:variable" reference."""

    module_path: str


OperationSource = ScriptSource | ModuleSource


@dataclass(slots=True, frozen=True)
class DataRailConfig:
    """Settings read from pyproject.toml; every field is optional."""

    operation: OperationSource | None = None
    input: Path | None = None
    output: Path | None = None
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find the nearest pyproject.toml in `start_dir` (default: cwd) or its parents."""
    start = (start_dir or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def _as_path(value: object, field_name: str, project_root: Path) -> Path:
    if not isinstance(value, str):
        msg = f"Invalid {_SECTION}.{field_name}: expected string path"
        raise ConfigError(msg)
    path = Path(value)
    return path if path.is_absolute() else project_root / path


def parse_operation_source(value: object, project_root: Path) -> OperationSource:
    """Parse an operation reference from config or the command line.

    Args:
        value: A "module.path:variable" string, or a table with a `script`
            path and an optional variable `name`.
        project_root: Base directory for a relative script path.

    Raises:
        ConfigError: If the value has neither form.

    """
    match value:
        case str() if ":" in value:
            return ModuleSource(module_path=value)
        case str():
            msg = f"Invalid module path '{value}'. Expected format: 'module.path:variable_name'"
            raise ConfigError(msg)
        case {"script": script, **rest}:
            name = rest.get("name")
            if name is not None and not isinstance(name, str):
                msg = f"Invalid {_SECTION}.operation.name: expected string"
                raise ConfigError(msg)
            return ScriptSource(script=_as_path(script, "operation.script", project_root), name=name)
        case _:
            msg = f"Invalid {_SECTION}.operation configuration. Expected string or table with 'script' key."
            raise ConfigError(msg)


def load_config(pyproject_path: Path) -> DataRailConfig:
    """Load the datarail section of a pyproject.toml.

    A file without the section gives a config with only `project_root` set.

    Raises:
        ConfigError: If the file is not valid TOML or a value is malformed.

    """
    project_root = pyproject_path.parent
    try:
        with pyproject_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {pyproject_path}: {e}"
        raise ConfigError(msg) from e

    section = data.get("tool", {}).get("datarail", {})
    logger.debug("Read %s from %s: %s", _SECTION, pyproject_path, section)

    operation = section.get("operation")
    return DataRailConfig(
        operation=None if operation is None else parse_operation_source(operation, project_root),
        input=None if "input" not in section else _as_path(section["input"], "input", project_root),
        output=None if "output" not in section else _as_path(section["output"], "output", project_root),
        project_root=project_root,
    )


def get_config() -> DataRailConfig:
    """Load the config of the project containing the working directory."""
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return DataRailConfig()
    return load_config(pyproject_path)
