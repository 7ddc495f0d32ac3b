"""
Loader for conversion plan files.

Plans are YAML (.yaml/.yml) or JSON (.json) documents validated against the
ConversionPlan model. Field names may be snake_case or camelCase.
"""

import json
from pathlib import Path
from typing import Any, Union

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from stackshift.errors.error_codes import ErrorCodes
from stackshift.errors.exceptions import ConfigurationError
from stackshift.logging import get_logger, log_entry_exit
from stackshift.models.conversion import ConversionPlan

logger = get_logger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}
JSON_SUFFIXES = {".json"}


def _parse(path: Path, text: str) -> Any:
    suffix = path.suffix.lower()
    try:
        if suffix in YAML_SUFFIXES:
            return yaml.safe_load(text)
        if suffix in JSON_SUFFIXES:
            return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            message=f"Invalid plan format in {path}: {e}",
            error_code=ErrorCodes.CONFIG_INVALID_FORMAT,
            context={"file": str(path)},
            details={"parse_error": str(e)},
        ) from e

    raise ConfigurationError(
        message=f"Unsupported plan file type: {path.suffix or '(none)'}",
        error_code=ErrorCodes.CONFIG_INVALID_FORMAT,
        context={"file": str(path)},
        suggestion="Use a .yaml, .yml or .json file",
    )


@log_entry_exit(logger=logger)
def load_plan(path: Union[str, Path]) -> ConversionPlan:
    """
    Load a conversion plan from a YAML or JSON file.

    Args:
        path: Path to the plan file

    Returns:
        The validated ConversionPlan

    Raises:
        ConfigurationError: If the file is missing, unreadable, malformed or
            does not describe a valid plan
    """
    plan_path = Path(path)

    try:
        text = plan_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            message=f"Cannot read plan file {plan_path}: {e}",
            error_code=ErrorCodes.CONFIG_LOAD_FAILED,
            context={"file": str(plan_path)},
            suggestion="Check that the file exists and is readable",
        ) from e

    data = _parse(plan_path, text)
    if not isinstance(data, dict):
        raise ConfigurationError(
            message=f"Plan file {plan_path} must contain a mapping at the top level",
            error_code=ErrorCodes.CONFIG_INVALID_FORMAT,
            context={"file": str(plan_path)},
        )

    # Plans exported by the planner are sometimes wrapped in {"plan": {...}}
    if "plan" in data and isinstance(data["plan"], dict) and "tasks" not in data:
        data = data["plan"]

    try:
        plan = ConversionPlan.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            message=f"Plan validation failed for {plan_path}: {e.error_count()} error(s)",
            error_code=ErrorCodes.CONFIG_INVALID_FORMAT,
            context={"file": str(plan_path)},
            details={"validation_errors": e.errors(include_url=False)},
        ) from e

    logger.info(f"Loaded plan {plan.id} with {len(plan.tasks)} tasks from {plan_path}")
    return plan
