"""Tests for workflow console output."""

from review_request.console import Console


class TestWorkflowCommands:

    def test_group_context_balanced(self, console, capsys):
        with console.group("Checking..."):
            assert console.in_group
            console.info("inside")
        assert not console.in_group
        assert capsys.readouterr().out.splitlines() == ["::group::Checking...", "", "inside", "", "::endgroup::"]

    def test_group_closed_on_exception(self, console):
        try:
            with console.group("Boom"):
                raise ValueError("x")
        except ValueError:
            pass
        assert not console.in_group

    def test_warning_escapes_newlines(self, console, capsys):
        console.warning("line one\nline two 100%")
        assert capsys.readouterr().out == "::warning::line one%0Aline two 100%25\n"

    def test_set_failed(self, console, capsys):
        console.set_failed("Code review request failed. Nope.")
        assert console.failed
        assert console.failure_message == "Code review request failed. Nope."
        assert "::error::Code review request failed. Nope." in capsys.readouterr().out


class TestSecrets:

    def test_secret_masked_and_redacted(self, console, capsys):
        console.set_secret("ghp_abc123")
        console.info("using ghp_abc123 now")
        out = capsys.readouterr().out.splitlines()
        assert out == ["::add-mask::ghp_abc123", "using *** now"]

    def test_empty_secret_ignored(self, console, capsys):
        console.set_secret("")
        console.set_secret(None)
        assert capsys.readouterr().out == ""


class TestStyledOutput:
    """Colors are stripped when output is not a terminal; labels remain."""

    def test_labels(self, console, capsys):
        console.show_error("bad")
        console.show_success("good")
        console.show_warning("hmm")
        assert capsys.readouterr().out.splitlines() == ["Error: bad", "Success: good", "Warning: hmm"]

    def test_title(self, console, capsys):
        console.show_title("Request Setup Phase")
        assert capsys.readouterr().out == "\nRequest Setup Phase\n"

    def test_forced_color_keeps_ansi(self, capsys):
        Console(color=True).show_error("bad")
        assert "\x1b[" in capsys.readouterr().out
