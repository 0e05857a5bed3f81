"""Utilities to discover operations in modules and scripts.

This module was adapted from `fastapi_cli.discover` of package `fastapi-cli` version 0.0.8 (77e6d1f).
"""

from __future__ import annotations

import importlib
import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from datarail._definition import OperationDefinition
from datarail._operation import Operation

if TYPE_CHECKING:
    from pathlib import Path

    from .config import OperationSource

logger = logging.getLogger(__name__)


@dataclass
class ModuleData:
    """Module data for a Python module."""

    module_import_str: str
    extra_sys_path: Path
    module_paths: list[Path]


def get_module_data_from_path(path: Path) -> ModuleData:
    """Get module data from a file path.

    Args:
        path: Path to a Python file or package

    Returns:
        ModuleData containing module import information

    """
    use_path = path.resolve()
    module_path = use_path
    if use_path.is_file() and use_path.stem == "__init__":
        module_path = use_path.parent
    module_paths = [module_path]
    extra_sys_path = module_path.parent
    for parent in module_path.parents:
        init_path = parent / "__init__.py"
        if init_path.is_file():
            module_paths.insert(0, parent)
            extra_sys_path = parent.parent
        else:
            break

    module_str = ".".join(p.stem for p in module_paths)
    return ModuleData(
        module_import_str=module_str,
        extra_sys_path=extra_sys_path.resolve(),
        module_paths=module_paths,
    )


def as_operation(obj: object, label: str) -> Operation:
    """Turn a loaded object into an Operation.

    Definitions are instantiated without overrides.

    Raises:
        TypeError: If the object is neither an Operation nor an OperationDefinition.

    """
    if isinstance(obj, Operation):
        return obj
    if isinstance(obj, OperationDefinition):
        return obj.instantiate()
    msg = f"{label} is not an Operation or OperationDefinition instance"
    raise TypeError(msg)


def load_operation_from_script(script_path: Path, name: str | None = None) -> Operation:
    """Load an operation from a Python script path.

    Args:
        script_path: Path to the Python script containing the operation
        name: Name of the operation variable. If None, the first Operation
            (or, failing that, OperationDefinition) found in the module is used

    Returns:
        The loaded Operation

    Raises:
        ImportError: If the module cannot be imported
        ValueError: If no operation is found or the named variable doesn't exist
        TypeError: If the named variable is not an operation

    """
    module_data = get_module_data_from_path(script_path)
    sys.path.insert(0, str(module_data.extra_sys_path))

    try:
        module = importlib.import_module(module_data.module_import_str)
    except (ImportError, ValueError):
        logger.exception("Import error")
        logger.warning("Ensure all the package directories have an __init__.py file")
        raise

    if name:
        if not hasattr(module, name):
            msg = f"Could not find operation '{name}' in {module_data.module_import_str}"
            raise ValueError(msg)
        return as_operation(getattr(module, name), f"'{name}' in {module_data.module_import_str}")

    # Prefer configured operations over bare definitions
    for kind in (Operation, OperationDefinition):
        for attr in dir(module):
            obj = getattr(module, attr)
            if isinstance(obj, kind):
                logger.debug("Found operation: %s", attr)
                return as_operation(obj, attr)

    msg = "Could not find an operation in module, try using --var"
    raise ValueError(msg)


def load_operation_from_module_path(module_path: str) -> Operation:
    """Load an operation from a module path (e.g., 'billing.operations:bill').

    Args:
        module_path: Module path in format 'module.path:variable_name'

    Returns:
        The loaded Operation

    Raises:
        ValueError: If module path format is invalid
        TypeError: If the specified variable is not an operation

    """
    if ":" not in module_path:
        msg = "Module path must be in format 'module.path:variable_name'"
        raise ValueError(msg)

    module_name, var_name = module_path.split(":", 1)
    module = importlib.import_module(module_name)
    return as_operation(getattr(module, var_name), f"'{var_name}' in module '{module_name}'")


def load_operation_from_source(source: OperationSource) -> Operation:
    """Load an operation from an OperationSource (script or module).

    Args:
        source: OperationSource instance (ScriptSource or ModuleSource)

    Returns:
        The loaded Operation

    """
    from .config import ModuleSource, ScriptSource  # noqa: PLC0415

    match source:
        case ScriptSource(script=script, name=name):
            return load_operation_from_script(script, name)
        case ModuleSource(module_path=module_path):
            return load_operation_from_module_path(module_path)
