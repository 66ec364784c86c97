"""
Gitignore rule engine with anchoring compatibility variants.

Every rule is registered verbatim and followed by variants covering the other
ways its anchoring could be read (``build/`` vs ``build``, ``/dist`` vs
``dist``). The variants only ever widen what is ignored. Matching is done by
``pathspec`` with gitignore semantics, so the last matching rule wins and
``!pattern`` re-includes. A rule pathspec cannot compile is dropped together
with its variants.
"""

from typing import List, Optional

import pathspec

from colored_logger import get_colored_logger
from .errors import RuleFileUnreadable
from .filesystem import FileSystem
from .paths import normalize_separators

logger = get_colored_logger(__name__)


def strip_inline_comment(line: str) -> str:
    """Cut ``line`` at the first ``#`` not escaped by a backslash."""
    escaped = False
    for index, char in enumerate(line):
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
        elif char == "#":
            return line[:index]
    return line


def parse_rules(text: str) -> List[str]:
    """Extract the effective rules from the contents of a rule file."""
    rules = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        line = strip_inline_comment(line).strip()
        if line:
            rules.append(line)
    return rules


def compatibility_variants(rule: str) -> List[str]:
    """
    Extra patterns registered after ``rule`` to tolerate ambiguous anchoring.

    Negated rules get no variants: widening a negation would narrow the
    ignored set.
    """
    if rule.startswith("!"):
        return []

    leading = rule.startswith("/")
    trailing = rule.endswith("/")
    variants = []

    if trailing and not leading:
        variants.append(rule[:-1])
    elif not trailing and not leading:
        variants.append(rule + "/")
    elif leading and not trailing:
        unanchored = rule[1:]
        variants.append(unanchored)
        variants.append(unanchored + "/")
    else:
        variants.append(rule[1:-1])
        variants.append(rule[1:])
        variants.append(rule[:-1])

    # "/" alone collapses to empty strings, which pathspec would reject
    return [variant for variant in variants if variant.strip("/")]


class IgnoreMatcher:
    """Compiled rule set answering whether a root-relative path is ignored."""

    def __init__(self, rules: Optional[List[str]] = None):
        self.rules: List[str] = list(rules or [])
        self.patterns: List[str] = []
        for rule in self.rules:
            group = [rule] + compatibility_variants(rule)
            try:
                pathspec.GitIgnoreSpec.from_lines(group)
            except ValueError as e:
                logger.warning("Dropping invalid ignore rule %r: %s", rule, e)
                continue
            self.patterns.extend(group)
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.patterns)

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def matches(self, relative_path: str, is_directory: bool = False) -> bool:
        """True when any registered pattern ignores ``relative_path``."""
        path = normalize_separators(relative_path).strip("/")
        if not path or not self.patterns:
            return False

        if is_directory:
            # Directory-only patterns need the trailing slash form
            return self._spec.match_file(path + "/") or self._spec.match_file(path)
        return self._spec.match_file(path)


class IgnoreRuleEngine:
    """Builds matchers from rule text or rule files."""

    @staticmethod
    def build(rule_file_contents: str) -> IgnoreMatcher:
        rules = parse_rules(rule_file_contents or "")
        matcher = IgnoreMatcher(rules)
        logger.debug(
            "Ignore rules: %d original, %d registered patterns",
            len(rules),
            len(matcher.patterns),
        )
        return matcher

    @staticmethod
    async def read_rule_file(fs: FileSystem, rule_file: str) -> str:
        try:
            data = await fs.read_file(rule_file)
        except OSError as e:
            raise RuleFileUnreadable(f"Cannot read {rule_file}: {e}") from e
        return data.decode("utf-8", errors="replace")

    @classmethod
    async def from_file(cls, fs: FileSystem, rule_file: str) -> IgnoreMatcher:
        """Build a matcher from a rule file, matching nothing if it cannot be read."""
        try:
            text = await cls.read_rule_file(fs, rule_file)
        except RuleFileUnreadable as e:
            logger.warning("%s; ignore rules disabled", e)
            return IgnoreMatcher()
        return cls.build(text)
