"""
Unit tests for ignore rules and tracked-file listing.
"""

import pytest

from workspace_rewind.backup.ignore import (
    DEFAULT_IGNORE_RULES,
    GitIgnoreFilter,
    TrackedFileLister,
    is_text_based_file_name,
    load_ignore_rules,
    parse_ignore_file,
)


class TestTextClassification:
    """Test is_text_based_file_name."""

    @pytest.mark.parametrize("name", [
        "main.py", "README.md", "Cargo.toml", "index.HTML", "Makefile",
        "Dockerfile", ".gitignore", "build.gradle.kts", "data.json",
    ])
    def test_text_names(self, name):
        assert is_text_based_file_name(name) is True

    @pytest.mark.parametrize("name", [
        "logo.png", "app.exe", "archive.tar.gz", "noextension", "trailingdot.",
    ])
    def test_binary_or_unknown_names(self, name):
        assert is_text_based_file_name(name) is False

    def test_extra_extensions_and_names(self):
        assert is_text_based_file_name("shader.glsl", extra_extensions=[".GLSL"]) is True
        assert is_text_based_file_name("Justfile", extra_names=["justfile"]) is True


class TestGitIgnoreFilter:
    """Test gitignore matching."""

    def test_default_rules_exclude_backup_tree(self):
        ignore = GitIgnoreFilter(DEFAULT_IGNORE_RULES)

        assert ignore.should_ignore(".backup/100.json")
        assert ignore.should_ignore(".backup", is_directory=True)
        assert ignore.should_ignore("nested/.operit/state.json")
        assert not ignore.should_ignore("src/backup.py")

    def test_globs_directories_and_negation(self):
        ignore = GitIgnoreFilter(["*.log", "build/", "!keep.log", "# comment", ""])

        assert ignore.rules == ["*.log", "build/", "!keep.log"]
        assert ignore.should_ignore("debug.log")
        assert ignore.should_ignore("logs/debug.log")
        assert not ignore.should_ignore("keep.log")
        assert ignore.should_ignore("build/out.txt")
        assert ignore.should_ignore("build", is_directory=True)
        assert not ignore.should_ignore("build", is_directory=False)

    def test_malformed_rules_are_skipped(self):
        ignore = GitIgnoreFilter(["*.log", "!", "build/"])

        assert ignore.rules == ["*.log", "build/"]
        assert ignore.rejected == ["!"]
        assert ignore.should_ignore("debug.log")
        assert ignore.should_ignore("build/out.txt")
        assert not ignore.should_ignore("a.txt")

    def test_anchored_pattern(self):
        ignore = GitIgnoreFilter(["/config.json"])

        assert ignore.should_ignore("config.json")
        assert not ignore.should_ignore("sub/config.json")


class TestLoadIgnoreRules:
    """Test reading the workspace ignore file."""

    def test_parse_ignore_file_skips_comments_and_blanks(self):
        content = "# deps\nnode_modules/\n\n  dist  \n"
        assert parse_ignore_file(content) == ["node_modules/", "dist"]

    @pytest.mark.asyncio
    async def test_defaults_without_ignore_file(self, fs, workspace):
        assert await load_ignore_rules(fs, workspace) == [".backup", ".operit"]

    @pytest.mark.asyncio
    async def test_defaults_then_file_rules(self, fs, workspace):
        fs.add_file(f"{workspace}/.gitignore", "*.tmp\nsecret.txt\n")

        rules = await load_ignore_rules(fs, workspace)

        assert rules == [".backup", ".operit", "*.tmp", "secret.txt"]

    @pytest.mark.asyncio
    async def test_unreadable_ignore_file_falls_back_to_defaults(self, fs, workspace):
        fs.add_file(f"{workspace}/.gitignore", "*.tmp\n")
        fs.fail_reads.add(f"{workspace}/.gitignore")

        assert await load_ignore_rules(fs, workspace, default_rules=["x"]) == ["x"]


class TestTrackedFileLister:
    """Test TrackedFileLister."""

    @pytest.mark.asyncio
    async def test_lists_text_files_not_ignored(self, fs, workspace):
        fs.add_file(f"{workspace}/src/main.py", "print()\n")
        fs.add_file(f"{workspace}/README.md", "# hi\n")
        fs.add_file(f"{workspace}/logo.png", b"\x89PNG")
        fs.add_file(f"{workspace}/notes.tmp.txt", "scratch")
        fs.add_file(f"{workspace}/.backup/100.json", "{}")
        fs.add_file(f"{workspace}/.backup/objects/ab/abcd", "blob")
        ignore = GitIgnoreFilter(list(DEFAULT_IGNORE_RULES) + ["*.tmp.txt"])

        tracked = await TrackedFileLister(fs).list_tracked(workspace, ignore)

        assert tracked == [f"{workspace}/README.md", f"{workspace}/src/main.py"]

    @pytest.mark.asyncio
    async def test_sorted_by_relative_path(self, fs, workspace):
        for rel in ("b.txt", "a/z.txt", "a.txt"):
            fs.add_file(f"{workspace}/{rel}", rel)

        tracked = await TrackedFileLister(fs).list_tracked(workspace, GitIgnoreFilter([]))

        assert tracked == [f"{workspace}/a.txt", f"{workspace}/a/z.txt", f"{workspace}/b.txt"]

    def test_is_tracked_rejects_root(self):
        lister = TrackedFileLister(None)
        assert lister.is_tracked("", GitIgnoreFilter([])) is False
