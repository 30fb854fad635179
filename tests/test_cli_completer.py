"""Tests for RelayCompleter."""

import pytest

from prompt_toolkit.document import Document

from cli.completer import RelayCompleter
from cli.constants import COMMANDS


@pytest.fixture
def workdir(tmp_path):
    """
    Create a working directory with files to upload.

    Returns:
        Path to the temporary working directory
    """
    (tmp_path / "video.mp4").write_text("content")
    (tmp_path / "report.pdf").write_text("content")
    (tmp_path / ".hidden").write_text("content")
    media = tmp_path / "media"
    media.mkdir()
    (media / "clip.mov").write_text("content")
    return tmp_path


@pytest.fixture
def completer(workdir):
    """Create a RelayCompleter rooted in the working directory."""
    return RelayCompleter(base_dir=workdir)


def get_completions_list(completer, text):
    """Helper to get list of completion texts from completer."""
    doc = Document(text, len(text))
    return [c.text for c in completer.get_completions(doc, None)]


class TestCommandCompletion:
    """Tests for command name completion."""

    def test_empty_input_shows_all_commands(self, completer):
        """Empty input should suggest all commands."""
        completions = get_completions_list(completer, "")
        for cmd in COMMANDS:
            assert cmd in completions

    def test_partial_command_filters(self, completer):
        """Partial command should filter to matching commands."""
        completions = get_completions_list(completer, "st")
        assert completions == ["stage"]

    def test_command_completion_case_insensitive(self, completer):
        """Command completion should be case insensitive."""
        completions = get_completions_list(completer, "UP")
        assert "upload" in completions


class TestPathCompletion:
    """Tests for local path completion in upload and send."""

    def test_upload_lists_files_and_directories(self, completer):
        completions = get_completions_list(completer, "upload ")
        assert "video.mp4" in completions
        assert "report.pdf" in completions
        assert "media/" in completions

    def test_hidden_files_skipped_unless_requested(self, completer):
        assert ".hidden" not in get_completions_list(completer, "upload ")
        assert ".hidden" in get_completions_list(completer, "upload .h")

    def test_partial_name_filters(self, completer):
        completions = get_completions_list(completer, "send re")
        assert completions == ["report.pdf"]

    def test_completes_inside_directory(self, completer):
        completions = get_completions_list(completer, "upload media/")
        assert completions == ["media/clip.mov"]

    def test_only_first_argument_is_a_path(self, completer):
        """The container argument of upload is not completed."""
        assert get_completions_list(completer, "upload video.mp4 ") == []

    def test_other_commands_have_no_path_completion(self, completer):
        assert get_completions_list(completer, "delete ") == []
        assert get_completions_list(completer, "copy vi") == []

    def test_missing_directory_yields_nothing(self, completer):
        assert get_completions_list(completer, "upload nowhere/") == []
