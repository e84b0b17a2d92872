"""Step definitions: the phase's command list as validated YAML data.

Uses jsonschema for Draft-07 validation, PyYAML for YAML reading.
"""

import json
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import jsonschema
import yaml

from review_request.process_runner import CommandSpec


DATA_DIR = Path(__file__).parent / "data"
DEFAULT_STEPS_FILE = DATA_DIR / "request_steps.yaml"
SCHEMA_FILE = DATA_DIR / "steps.schema.json"

# Fields a check warning may reference
WARNING_FIELDS = ("found", "expected")


class StepDefinitionError(Exception):
    """Raised when a step definition file cannot be loaded or is invalid."""
    pass


@dataclass(frozen=True)
class Step:
    """A command to run, optionally recorded in the status map."""
    spec: CommandSpec
    status: Optional[str] = None


@dataclass(frozen=True)
class Check:
    """A search whose match count is compared against an expected count."""
    name: str
    spec: CommandSpec
    expected: int
    warning: str

    def warning_text(self, found: int) -> str:
        return self.warning.format_map(_WarningFields(found=found, expected=self.expected))


class _WarningFields(dict):
    """Leaves unknown {fields} in a warning template as written."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


@dataclass(frozen=True)
class StepGroup:
    title: str
    steps: List[Step] = field(default_factory=list)


@dataclass(frozen=True)
class PhaseDefinition:
    groups: List[StepGroup] = field(default_factory=list)
    checks: List[Check] = field(default_factory=list)


# --- Loading ---

def _load_schema() -> dict:
    return json.loads(SCHEMA_FILE.read_text())


def _substitute(text: str, placeholders: Mapping[str, str]) -> str:
    # Plain replacement: search patterns may contain their own braces
    for name, value in placeholders.items():
        text = text.replace(f"{{{name}}}", value)
    return text


def validate_definition(data: object, source: str = "steps") -> List[str]:
    """
    Validate raw definition data against the schema, then check that every
    warning template only uses {found} and {expected}.

    Returns ALL errors (not just the first), each prefixed with source and path.
    """
    errors = []
    validator = jsonschema.Draft7Validator(_load_schema())
    for error in validator.iter_errors(data):
        path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "(root)"
        errors.append(f"{source}: {error.message} at {path}")
    errors.extend(_template_errors(data, source))
    return errors


def _template_errors(data: object, source: str) -> List[str]:
    checks = data.get("checks") if isinstance(data, dict) else None
    if not isinstance(checks, list):
        return []

    errors = []
    for i, raw in enumerate(checks):
        warning = raw.get("warning") if isinstance(raw, dict) else None
        if not isinstance(warning, str):
            continue
        try:
            fields = [name for _, name, _, _ in string.Formatter().parse(warning) if name is not None]
        except ValueError as e:
            errors.append(f"{source}: invalid warning template ({e}) at checks.{i}.warning")
            continue
        unknown = [repr(name) for name in fields if name not in WARNING_FIELDS]
        if unknown:
            errors.append(
                f"{source}: unknown warning field(s) {', '.join(unknown)} at checks.{i}.warning"
            )
    return errors


def _build_spec(raw: dict, placeholders: Mapping[str, str], capture_output: bool) -> CommandSpec:
    cwd = raw.get("cwd")
    return CommandSpec(
        command=raw["command"],
        arguments=tuple(_substitute(a, placeholders) for a in raw.get("args", [])),
        working_directory=_substitute(cwd, placeholders) if cwd else None,
        success_title=raw.get("title"),
        failure_message=None if capture_output else raw.get("error"),
        capture_output=capture_output,
    )


def build_definition(data: dict, placeholders: Optional[Mapping[str, str]] = None) -> PhaseDefinition:
    """Turn validated definition data into command specs."""
    placeholders = placeholders or {}

    groups = [
        StepGroup(
            title=group["title"],
            steps=[
                Step(spec=_build_spec(raw, placeholders, False), status=raw.get("status"))
                for raw in group["steps"]
            ],
        )
        for group in data["groups"]
    ]
    checks = [
        Check(
            name=raw["name"],
            spec=_build_spec(raw, placeholders, True),
            expected=raw["expected"],
            warning=raw["warning"],
        )
        for raw in data.get("checks", [])
    ]
    return PhaseDefinition(groups=groups, checks=checks)


def load_definition(
    steps_file: Optional[Path] = None,
    placeholders: Optional[Dict[str, str]] = None,
) -> PhaseDefinition:
    """
    Load a phase definition from YAML.

    Args:
        steps_file: Definition file (default: the packaged request phase)
        placeholders: Values for {name} placeholders in args and cwd

    Raises:
        StepDefinitionError: On unreadable files, YAML errors, or schema violations
    """
    steps_file = Path(steps_file) if steps_file else DEFAULT_STEPS_FILE

    try:
        data = yaml.safe_load(steps_file.read_text())
    except OSError as e:
        raise StepDefinitionError(f"Unable to read {steps_file}: {e}")
    except yaml.YAMLError as e:
        if hasattr(e, "problem_mark") and e.problem_mark:
            mark = e.problem_mark
            raise StepDefinitionError(
                f"{steps_file.name}: YAML parse error at line {mark.line + 1}, "
                f"column {mark.column + 1}: {e.problem or 'syntax error'}"
            )
        raise StepDefinitionError(f"{steps_file.name}: YAML parse error: {e}")

    errors = validate_definition(data, steps_file.name)
    if errors:
        raise StepDefinitionError(
            f"{len(errors)} error(s) in step definition:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    return build_definition(data, placeholders)
