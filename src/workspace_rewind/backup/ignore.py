"""Decides which workspace files are tracked by snapshots

A file is tracked when it is not excluded by the ignore rules and its name
marks it as text. Ignore rules are the configured defaults plus the lines of
the workspace ``.gitignore``, matched with gitignore semantics by pathspec.
"""

from typing import Iterable, List, Optional, Protocol

import pathspec

from ..access.base import FileAccess
from ..utils.config import DEFAULT_IGNORE_RULES
from ..utils.errors import FileAccessError
from ..utils.logging import get_logger
from .paths import base_name, join_path, make_relative_path

logger = get_logger(__name__)

TEXT_EXTENSIONS = frozenset({
    # documents
    "txt", "md", "markdown", "rst", "adoc", "org", "tex", "log", "csv", "tsv",
    # data / config
    "json", "jsonl", "yaml", "yml", "toml", "ini", "cfg", "conf", "properties",
    "xml", "env", "lock", "gradle", "sql", "graphql", "proto",
    # web
    "html", "htm", "css", "scss", "sass", "less", "svg", "vue", "svelte",
    # code
    "py", "pyi", "js", "mjs", "cjs", "jsx", "ts", "tsx", "java", "kt", "kts",
    "scala", "groovy", "c", "h", "cc", "cpp", "cxx", "hpp", "hh", "m", "mm",
    "cs", "go", "rs", "rb", "php", "pl", "pm", "lua", "r", "dart", "swift",
    "sh", "bash", "zsh", "fish", "ps1", "bat", "cmd", "hs", "ex", "exs", "erl",
    "clj", "elm", "ml", "mli", "fs", "vb", "asm", "s", "cmake", "mk",
})

TEXT_FILE_NAMES = frozenset({
    "makefile", "dockerfile", "readme", "license", "changelog", "gemfile",
    "rakefile", "procfile", "vagrantfile", ".gitignore", ".gitattributes",
    ".editorconfig", ".dockerignore", ".npmrc", ".prettierrc", ".eslintrc",
    ".env",
})


def is_text_based_file_name(
    name: str,
    extra_extensions: Iterable[str] = (),
    extra_names: Iterable[str] = ()
) -> bool:
    """Classify a file name as text from its extension or well-known name."""
    lowered = name.lower()
    if lowered in TEXT_FILE_NAMES or lowered in {n.lower() for n in extra_names}:
        return True
    _, dot, extension = lowered.rpartition(".")
    if not dot or not extension:
        return False
    return extension in TEXT_EXTENSIONS or extension in {e.lower().lstrip(".") for e in extra_extensions}


class IgnoreFilter(Protocol):
    """Classifies a workspace-relative path as excluded"""

    def should_ignore(self, rel_path: str, is_directory: bool = False) -> bool:
        ...


class GitIgnoreFilter:
    """Gitignore-style filter backed by a pathspec GitIgnoreSpec"""

    def __init__(self, rules: Iterable[str]):
        self.rules: List[str] = []
        self.rejected: List[str] = []
        for rule in rules:
            if not rule.strip() or rule.strip().startswith("#"):
                continue
            try:
                pathspec.GitIgnoreSpec.from_lines([rule])
            except ValueError as e:
                logger.warning("ignore_rule_invalid", rule=rule, error=str(e))
                self.rejected.append(rule)
                continue
            self.rules.append(rule)
        # One spec so negations apply to the rules before them
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.rules)

    def should_ignore(self, rel_path: str, is_directory: bool = False) -> bool:
        candidate = rel_path.rstrip("/") + "/" if is_directory else rel_path
        return self._spec.match_file(candidate)


def parse_ignore_file(content: str) -> List[str]:
    return [
        line.strip()
        for line in content.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


async def load_ignore_rules(
    access: FileAccess,
    workspace_path: str,
    default_rules: Iterable[str] = DEFAULT_IGNORE_RULES,
    ignore_file_name: str = ".gitignore"
) -> List[str]:
    """Default rules followed by the workspace ignore file, if readable."""
    rules = list(default_rules)
    ignore_path = join_path(workspace_path, ignore_file_name)
    try:
        exists = await access.exists(ignore_path)
        if exists.exists and not exists.is_directory:
            rules.extend(parse_ignore_file(await access.read_text(ignore_path)))
    except FileAccessError as e:
        logger.warning("ignore_file_unreadable", path=ignore_path, error=str(e))
    return rules


class TrackedFileLister:
    """Enumerates trackable files of a workspace through a FileAccess"""

    def __init__(
        self,
        access: FileAccess,
        extra_text_extensions: Iterable[str] = (),
        extra_text_file_names: Iterable[str] = ()
    ):
        self.access = access
        self.extra_text_extensions = tuple(extra_text_extensions)
        self.extra_text_file_names = tuple(extra_text_file_names)

    def is_tracked(self, rel_path: str, ignore_filter: IgnoreFilter) -> bool:
        if not rel_path:
            return False
        name = base_name(rel_path)
        if not is_text_based_file_name(name, self.extra_text_extensions, self.extra_text_file_names):
            return False
        return not ignore_filter.should_ignore(rel_path, is_directory=False)

    async def list_tracked(
        self,
        workspace_path: str,
        ignore_filter: IgnoreFilter,
        pattern: Optional[str] = "*"
    ) -> List[str]:
        """Absolute paths of tracked files, sorted by relative path."""
        all_files = await self.access.find_files(workspace_path, pattern or "*")
        root = workspace_path.rstrip("/")
        tracked = []
        for full_path in all_files:
            rel = make_relative_path(root, full_path)
            if rel is None or not self.is_tracked(rel, ignore_filter):
                continue
            tracked.append((rel, full_path))
        tracked.sort()
        return [full_path for _, full_path in tracked]
