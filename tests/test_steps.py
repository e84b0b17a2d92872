"""Tests for step definition loading and validation."""

import pytest
import yaml

from review_request.process_runner import CommandSpec
from review_request.steps import (
    Check,
    DEFAULT_STEPS_FILE,
    StepDefinitionError,
    build_definition,
    load_definition,
    validate_definition,
)


MINIMAL = {
    "groups": [
        {
            "title": "Building...",
            "steps": [
                {"command": "mvn", "args": ["-f", "{main_dir}/pom.xml"], "error": "Build failed", "status": "maven"},
                {"command": "ls", "cwd": "{main_dir}/"},
            ],
        }
    ],
    "checks": [
        {
            "name": "todoComments",
            "command": "grep",
            "args": ["-rn", "TODO{1,}", "{main_dir}/src"],
            "expected": 0,
            "warning": "Found {found}; expected {expected}.",
        }
    ],
}


def _write(tmp_path, data, name="steps.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data) if not isinstance(data, str) else data)
    return path


class TestPackagedDefinition:
    """The packaged request phase loads and mirrors the course workflow."""

    def test_default_file_is_valid(self):
        definition = load_definition()
        titles = [group.title for group in definition.groups]
        assert titles == [
            "Displaying environment setup...",
            "Updating Maven dependencies...",
            "Checking code for warnings...",
        ]

    def test_default_placeholders_substituted(self):
        definition = load_definition(placeholders={"main_dir": "project-alice"})
        compile_step = definition.groups[2].steps[0]
        assert compile_step.status == "mainCompile"
        assert compile_step.spec.working_directory == "project-alice/"
        assert "-DcompileOptionFail=true" in compile_step.spec.arguments

    def test_default_checks(self):
        definition = load_definition()
        assert [(c.name, c.expected) for c in definition.checks] == [
            ("todoComments", 0),
            ("mainMethods", 1),
        ]

    def test_default_file_exists_in_package(self):
        assert DEFAULT_STEPS_FILE.exists()

    def test_searches_read_non_utf8_sources_as_text(self):
        """grep would otherwise skip a Latin-1 source file as binary."""
        for check in load_definition().checks:
            flags = check.spec.arguments[0]
            assert "a" in flags
            assert "I" not in flags


class TestBuildDefinition:

    def test_steps_must_succeed(self):
        definition = build_definition(MINIMAL, {"main_dir": "m"})
        step = definition.groups[0].steps[0]
        assert step.spec.failure_message == "Build failed"
        assert step.spec.arguments == ("-f", "m/pom.xml")
        assert not step.spec.capture_output

    def test_checks_never_fail_and_capture(self):
        definition = build_definition(MINIMAL, {"main_dir": "m"})
        check = definition.checks[0]
        assert check.spec.failure_message is None
        assert check.spec.capture_output

    def test_regex_braces_survive_substitution(self):
        """Only known placeholders are replaced; regex quantifiers stay intact."""
        definition = build_definition(MINIMAL, {"main_dir": "m"})
        assert definition.checks[0].spec.arguments == ("-rn", "TODO{1,}", "m/src")

    def test_unknown_placeholders_left_alone(self):
        definition = build_definition(MINIMAL, {})
        assert definition.groups[0].steps[1].spec.working_directory == "{main_dir}/"

    def test_warning_text(self):
        check = build_definition(MINIMAL).checks[0]
        assert check.warning_text(3) == "Found 3; expected 0."

    def test_warning_text_keeps_unknown_fields(self):
        check = Check(name="todo", spec=CommandSpec("grep"), expected=0, warning="Remove {TODO} markers ({found})")
        assert check.warning_text(1) == "Remove {TODO} markers (1)"

    def test_checks_optional(self):
        data = {"groups": MINIMAL["groups"]}
        assert build_definition(data).checks == []


class TestValidation:
    """Invalid documents report every schema error."""

    def test_valid_minimal(self):
        assert validate_definition(MINIMAL) == []

    def test_missing_command(self):
        data = {"groups": [{"title": "x", "steps": [{"args": ["a"]}]}]}
        errors = validate_definition(data)
        assert any("'command' is a required property" in e for e in errors)

    def test_all_errors_collected(self):
        data = {"groups": [{"title": "x", "steps": [{"args": "notalist"}, {"command": ""}]}]}
        assert len(validate_definition(data)) >= 3

    def test_unknown_key_rejected(self):
        data = {"groups": [{"title": "x", "steps": [{"command": "ls", "shell": True}]}]}
        assert validate_definition(data)

    def test_negative_expected_rejected(self):
        data = {
            "groups": [],
            "checks": [{"name": "n", "command": "grep", "args": [], "expected": -1, "warning": "w"}],
        }
        assert validate_definition(data)

    def test_unknown_warning_field_rejected(self):
        data = {
            "groups": [],
            "checks": [{"name": "n", "command": "grep", "args": [], "expected": 0, "warning": "Remove {TODO} ({found})"}],
        }
        errors = validate_definition(data)
        assert errors == ["steps: unknown warning field(s) 'TODO' at checks.0.warning"]

    def test_malformed_warning_template_rejected(self):
        data = {
            "groups": [],
            "checks": [{"name": "n", "command": "grep", "args": [], "expected": 0, "warning": "Found {found"}],
        }
        errors = validate_definition(data)
        assert len(errors) == 1
        assert "invalid warning template" in errors[0]

    def test_escaped_braces_allowed(self):
        data = {
            "groups": [],
            "checks": [{"name": "n", "command": "grep", "args": [], "expected": 0, "warning": "Found {found} {{TODO}} markers"}],
        }
        assert validate_definition(data) == []


class TestLoadErrors:

    def test_invalid_file_raises(self, tmp_path):
        path = _write(tmp_path, {"groups": [{"title": "x"}]})
        with pytest.raises(StepDefinitionError) as exc_info:
            load_definition(path)
        assert "steps.yaml" in str(exc_info.value)
        assert "1 error(s)" in str(exc_info.value)

    def test_yaml_error_reports_line(self, tmp_path):
        path = _write(tmp_path, "groups:\n  - title: [unclosed\n")
        with pytest.raises(StepDefinitionError) as exc_info:
            load_definition(path)
        assert "YAML parse error" in str(exc_info.value)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(StepDefinitionError) as exc_info:
            load_definition(tmp_path / "missing.yaml")
        assert "Unable to read" in str(exc_info.value)

    def test_empty_file_is_invalid(self, tmp_path):
        path = _write(tmp_path, "")
        with pytest.raises(StepDefinitionError):
            load_definition(path)
