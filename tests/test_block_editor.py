"""
Tests for the package block editor — locate, list, insert, remove.
"""

import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from declair.core.services.block_editor import (
    BlockNotFound,
    EntryAlreadyPresent,
    EntryNotFound,
    IoFailure,
    MalformedBlock,
    add_entry,
    backup_path_for,
    drop_entry,
    insert_entry,
    list_entries,
    list_file_entries,
    locate_block,
    read_document,
    remove_entry,
)

MULTI_LINE = "{\n  with pkgs; [\n    git\n  ];\n}\n"


# ═══════════════════════════════════════════════════════════════════
#  Locate
# ═══════════════════════════════════════════════════════════════════


class TestLocateBlock:
    def test_multi_line(self):
        lines = ["{", "  x = with pkgs; [", "    git", "  ];", "}"]
        assert locate_block(lines) == (1, 3)

    def test_single_line(self):
        assert locate_block(["with pkgs; [ git ]"]) == (0, 0)

    def test_empty_brackets(self):
        assert locate_block(["a", "with pkgs; []"]) == (1, 1)

    def test_first_marker_wins(self):
        lines = ["with pkgs; [ a ]", "with pkgs; [ b ]"]
        assert locate_block(lines) == (0, 0)

    def test_no_marker(self):
        with pytest.raises(BlockNotFound):
            locate_block(["{ }", "environment.systemPackages = [ ];"])

    def test_marker_never_closed(self):
        with pytest.raises(BlockNotFound, match="never closed"):
            locate_block(["with pkgs; [", "  git", "  vim"])

    def test_bracket_before_marker_is_ignored(self):
        with pytest.raises(BlockNotFound):
            locate_block(["]", "with pkgs; [", "git"])


# ═══════════════════════════════════════════════════════════════════
#  List
# ═══════════════════════════════════════════════════════════════════


class TestListEntries:
    def test_single_line_order(self):
        lines = ["with pkgs; [ a b ]"]
        assert list_entries(lines, 0, 0) == ["a", "b"]

    def test_single_line_empty(self):
        assert list_entries(["with pkgs; []"], 0, 0) == []

    def test_multi_line(self):
        lines = ["with pkgs; [", "  a", "  b", "];"]
        assert list_entries(lines, 0, 3) == ["a", "b"]

    def test_multi_line_skips_blanks_and_comments(self):
        lines = [
            "with pkgs; [",
            "  a",
            "",
            "   ",
            "  # commented",
            "  // also commented",
            "  b  # with a note",
            "];",
        ]
        assert list_entries(lines, 0, 7) == ["a", "b"]

    def test_duplicates_kept(self):
        lines = ["with pkgs; [", "  a", "  a # again", "]"]
        assert list_entries(lines, 0, 3) == ["a", "a"]

    def test_malformed_single_line(self):
        lines = ["] with pkgs; ["]
        start, end = locate_block(lines)
        with pytest.raises(MalformedBlock):
            list_entries(lines, start, end)


# ═══════════════════════════════════════════════════════════════════
#  Pure mutations
# ═══════════════════════════════════════════════════════════════════


class TestAddEntry:
    def test_empty_brackets(self):
        assert add_entry(["with pkgs; []"], "vim") == ["with pkgs; [ vim ]"]

    def test_spaced_list(self):
        assert add_entry(["with pkgs; [ git ]"], "vim") == ["with pkgs; [ git vim ]"]

    def test_unspaced_list(self):
        assert add_entry(["with pkgs; [git]"], "vim") == ["with pkgs; [git vim ]"]

    def test_single_line_suffix_kept(self):
        lines = ["  environment.systemPackages = with pkgs; [ git ];"]
        assert add_entry(lines, "vim") == [
            "  environment.systemPackages = with pkgs; [ git vim ];"
        ]

    def test_multi_line_doubles_closing_indent(self):
        lines = ["{", "  with pkgs; [", "    git", "  ];", "}"]
        assert add_entry(lines, "vim") == [
            "{", "  with pkgs; [", "    git", "    vim", "  ];", "}",
        ]

    def test_multi_line_unindented_closing(self):
        lines = ["with pkgs; [", "git", "];"]
        assert add_entry(lines, "vim") == ["with pkgs; [", "git", "vim", "];"]

    def test_input_not_mutated(self):
        lines = ["with pkgs; [", "  git", "];"]
        snapshot = list(lines)
        add_entry(lines, "vim")
        assert lines == snapshot

    def test_duplicate_single_line(self):
        with pytest.raises(EntryAlreadyPresent, match="already in the config"):
            add_entry(["with pkgs; [ git vim ]"], "git")

    def test_duplicate_multi_line(self):
        with pytest.raises(EntryAlreadyPresent):
            add_entry(["with pkgs; [", "  git # vcs", "];"], "git")

    def test_duplicate_on_marker_line(self):
        with pytest.raises(EntryAlreadyPresent):
            add_entry(["with pkgs; [ git", "  ];"], "git")

    def test_substring_of_existing_entry_is_allowed(self):
        assert add_entry(["with pkgs; [ gitFull ]"], "git") == [
            "with pkgs; [ gitFull git ]"
        ]

    def test_no_block(self):
        with pytest.raises(BlockNotFound):
            add_entry(["{ }"], "vim")

    def test_round_trip_multi_line(self):
        lines = ["with pkgs; [", "  a", "  b", "  ];"]
        before = list_entries(lines, *locate_block(lines))
        after_lines = add_entry(lines, "c")
        assert list_entries(after_lines, *locate_block(after_lines)) == before + ["c"]

    def test_round_trip_single_line(self):
        after_lines = add_entry(["with pkgs; [ a b ]"], "c")
        assert list_entries(after_lines, 0, 0) == ["a", "b", "c"]


class TestDropEntry:
    def test_single_line(self):
        assert drop_entry(["with pkgs; [ git vim ]"], "git") == ["with pkgs; [ vim ]"]

    def test_single_line_removes_one_occurrence(self):
        assert drop_entry(["with pkgs; [ a b a ]"], "a") == ["with pkgs; [ b a ]"]

    def test_single_line_suffix_kept(self):
        lines = ["  x = with pkgs; [ git vim ];"]
        assert drop_entry(lines, "vim") == ["  x = with pkgs; [ git ];"]

    def test_single_line_last_entry(self):
        result = drop_entry(["with pkgs; [ git ]"], "git")
        assert result == ["with pkgs; [ ]"]
        assert list_entries(result, 0, 0) == []

    def test_single_line_exact_match_only(self):
        with pytest.raises(EntryNotFound, match="not found"):
            drop_entry(["with pkgs; [ gitFull ]"], "git")

    def test_multi_line_deletes_line(self):
        lines = ["with pkgs; [", "  git # vcs", "  vim", "];"]
        assert drop_entry(lines, "git") == ["with pkgs; [", "  vim", "];"]

    def test_multi_line_first_match_only(self):
        lines = ["with pkgs; [", "  a", "  b", "  a", "];"]
        assert drop_entry(lines, "a") == ["with pkgs; [", "  b", "  a", "];"]

    def test_multi_line_not_found(self):
        with pytest.raises(EntryNotFound):
            drop_entry(["with pkgs; [", "  gitFull", "];"], "git")

    def test_no_block(self):
        with pytest.raises(BlockNotFound):
            drop_entry(["nothing here"], "git")


# ═══════════════════════════════════════════════════════════════════
#  File operations
# ═══════════════════════════════════════════════════════════════════


class TestBackupPath:
    def test_extension_replaced(self):
        assert backup_path_for(Path("/etc/nixos/configuration.nix")) == Path(
            "/etc/nixos/configuration.declair.bak"
        )

    def test_no_extension(self):
        assert backup_path_for(Path("/tmp/pkgs")) == Path("/tmp/pkgs.declair.bak")


class TestInsertEntry:
    def test_multi_line_scenario(self, write_nix):
        path = write_nix(MULTI_LINE)
        backup = insert_entry(path, "vim")

        assert path.read_text() == "{\n  with pkgs; [\n    git\n    vim\n  ];\n}\n"
        assert backup == path.with_name("configuration.declair.bak")
        assert backup.read_bytes() == MULTI_LINE.encode()

    def test_missing_trailing_newline_kept_missing(self, write_nix):
        path = write_nix("with pkgs; [ git ]")
        insert_entry(path, "vim")
        assert path.read_text() == "with pkgs; [ git vim ]"

    def test_second_insert_fails_and_leaves_file(self, write_nix):
        path = write_nix(MULTI_LINE)
        insert_entry(path, "vim")
        after_first = path.read_bytes()

        with pytest.raises(EntryAlreadyPresent):
            insert_entry(path, "vim")
        assert path.read_bytes() == after_first

    def test_backup_overwritten_each_edit(self, write_nix):
        path = write_nix(MULTI_LINE)
        insert_entry(path, "vim")
        after_first = path.read_text()
        backup = insert_entry(path, "htop")
        assert backup.read_text() == after_first

    def test_no_block_no_backup(self, write_nix):
        path = write_nix("{\n  services.openssh.enable = true;\n}\n")
        before = path.read_bytes()

        with pytest.raises(BlockNotFound):
            insert_entry(path, "vim")
        assert path.read_bytes() == before
        assert not backup_path_for(path).exists()

    def test_file_mode_preserved(self, write_nix):
        path = write_nix(MULTI_LINE)
        path.chmod(0o644)
        insert_entry(path, "vim")
        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    def test_no_temp_files_left(self, write_nix, tmp_path: Path):
        path = write_nix(MULTI_LINE)
        insert_entry(path, "vim")
        assert sorted(p.name for p in tmp_path.iterdir() if p.is_file()) == [
            "configuration.declair.bak",
            "configuration.nix",
        ]

    def test_symlink_target_updated(self, tmp_path: Path):
        repo = tmp_path / "repo"
        repo.mkdir()
        target = repo / "configuration.nix"
        target.write_text("with pkgs; [\n  git\n];\n", encoding="utf-8")
        link = tmp_path / "configuration.nix"
        link.symlink_to(target)

        backup = insert_entry(link, "vim")

        assert link.is_symlink()
        assert link.resolve() == target.resolve()
        assert target.read_text() == "with pkgs; [\n  git\n  vim\n];\n"
        assert backup == tmp_path / "configuration.declair.bak"
        assert not backup.is_symlink()
        assert backup.read_text() == "with pkgs; [\n  git\n];\n"

    def test_form_feed_and_line_separator_kept(self, write_nix):
        content = "{\n  # a\u2028b\n  with pkgs; [\n    git\n  ];\n}\n\x0c# page 2\n"
        path = write_nix(content)
        insert_entry(path, "vim")
        assert path.read_text(encoding="utf-8") == content.replace(
            "    git\n", "    git\n    vim\n"
        )

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(IoFailure, match="Cannot read"):
            insert_entry(tmp_path / "absent.nix", "vim")

    def test_write_failure_after_backup(self, write_nix):
        path = write_nix(MULTI_LINE)
        with patch(
            "declair.core.services.block_editor._write_atomic",
            side_effect=PermissionError("read-only"),
        ):
            with pytest.raises(IoFailure, match="Cannot write"):
                insert_entry(path, "vim")

        assert path.read_text() == MULTI_LINE
        assert backup_path_for(path).read_text() == MULTI_LINE


class TestRemoveEntry:
    def test_single_line_scenario(self, write_nix):
        path = write_nix("with pkgs; [ git vim ]")
        remove_entry(path, "git")
        assert path.read_text() == "with pkgs; [ vim ]"

    def test_multi_line(self, write_nix):
        path = write_nix("{\n  with pkgs; [\n    git\n    vim\n  ];\n}\n")
        remove_entry(path, "git")
        assert path.read_text() == MULTI_LINE.replace("git", "vim")

    def test_not_found_leaves_file_identical(self, write_nix):
        path = write_nix(MULTI_LINE)
        before = path.read_bytes()

        with pytest.raises(EntryNotFound):
            remove_entry(path, "emacs")
        assert path.read_bytes() == before
        assert not backup_path_for(path).exists()

    def test_no_block_no_backup(self, write_nix):
        path = write_nix("{\n  services.openssh.enable = true;\n}\n")
        before = path.read_bytes()

        with pytest.raises(BlockNotFound):
            remove_entry(path, "git")
        assert path.read_bytes() == before
        assert not backup_path_for(path).exists()

    def test_form_feed_kept(self, write_nix):
        path = write_nix("with pkgs; [\n  git\n  vim\n];\n\x0c# page 2\n")
        remove_entry(path, "git")
        assert path.read_text() == "with pkgs; [\n  vim\n];\n\x0c# page 2\n"

    def test_round_trip(self, write_nix):
        path = write_nix("with pkgs; [\n  a\n  b\n  a\n];\n")
        remove_entry(path, "a")
        assert list_file_entries(path) == ["b", "a"]


class TestReadDocument:
    def test_lines_and_newline(self, write_nix):
        doc = read_document(write_nix("a\nb\n"))
        assert doc.lines == ["a", "b"]
        assert doc.trailing_newline is True
        assert doc.render() == "a\nb\n"

    def test_render_replacement_lines(self, write_nix):
        doc = read_document(write_nix("a"))
        assert doc.render(["x", "y"]) == "x\ny"

    def test_only_newline_splits_lines(self, write_nix):
        doc = read_document(write_nix("a\x0cb\u2028c\nd\n"))
        assert doc.lines == ["a\x0cb\u2028c", "d"]

    def test_empty_file(self, write_nix):
        doc = read_document(write_nix(""))
        assert doc.lines == []
        assert doc.render() == ""
