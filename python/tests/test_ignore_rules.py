"""
Tests for the gitignore rule engine and its anchoring variants.
"""

import logging
import unittest

import pathspec

from gitzip.errors import RuleFileUnreadable
from gitzip.filesystem import FileStat
from gitzip.ignore_rules import (
    IgnoreMatcher,
    IgnoreRuleEngine,
    compatibility_variants,
    parse_rules,
    strip_inline_comment,
)
from .test_utils import BaseTestCase


class UnreadableFileSystem:
    """FileSystem double whose reads always fail."""

    async def read_file(self, path):
        raise PermissionError(13, "Permission denied", path)

    async def stat(self, path):
        return FileStat(exists=True)


class InMemoryRuleFileSystem:
    def __init__(self, text):
        self.text = text

    async def read_file(self, path):
        return self.text.encode("utf-8")


class TestParseRules(unittest.TestCase):
    def test_blank_lines_and_comments_skipped(self):
        text = "\n# comment\n   # indented comment\nbuild/\n\n*.log\n"
        self.assertEqual(parse_rules(text), ["build/", "*.log"])

    def test_inline_comment_stripped(self):
        self.assertEqual(parse_rules("dist # build output\n"), ["dist"])

    def test_line_empty_after_stripping_is_skipped(self):
        self.assertEqual(parse_rules("   \n \t# x\n"), [])

    def test_escaped_hash_kept(self):
        self.assertEqual(strip_inline_comment(r"\#notes # real"), r"\#notes ")

    def test_windows_line_endings(self):
        self.assertEqual(parse_rules("a\r\nb\r\n"), ["a", "b"])


class TestCompatibilityVariants(unittest.TestCase):
    """One test per anchoring shape a rule can take."""

    def test_trailing_slash_only(self):
        self.assertEqual(compatibility_variants("build/"), ["build"])

    def test_no_slashes(self):
        self.assertEqual(compatibility_variants("dist"), ["dist/"])

    def test_leading_slash_only(self):
        self.assertEqual(
            compatibility_variants("/node_modules"), ["node_modules", "node_modules/"]
        )

    def test_leading_and_trailing_slash(self):
        self.assertEqual(compatibility_variants("/out/"), ["out", "out/", "/out"])

    def test_negated_rules_get_no_variants(self):
        self.assertEqual(compatibility_variants("!keep.log"), [])

    def test_bare_slash_produces_nothing(self):
        self.assertEqual(compatibility_variants("/"), [])

    def test_variants_registered_after_their_rule(self):
        matcher = IgnoreMatcher(["build/", "/out"])
        self.assertEqual(matcher.patterns, ["build/", "build", "/out", "out", "out/"])


class TestIgnoreMatcher(BaseTestCase):
    def test_trailing_slash_rule_matches_directory_and_contents(self):
        matcher = IgnoreRuleEngine.build("build/\n")
        self.assertTrue(matcher.matches("build", is_directory=True))
        self.assertTrue(matcher.matches("build/anything"))
        self.assertTrue(matcher.matches("build/deep/file.o"))
        self.assertTrue(matcher.matches("src/build/x"))
        self.assertFalse(matcher.matches("src/builder.py"))

    def test_plain_rule_matches_everywhere(self):
        matcher = IgnoreRuleEngine.build("dist\n")
        self.assertTrue(matcher.matches("dist", is_directory=True))
        self.assertTrue(matcher.matches("dist/bundle.js"))
        self.assertTrue(matcher.matches("packages/web/dist/app.js"))
        self.assertFalse(matcher.matches("distribution.txt"))

    def test_anchored_rule_is_widened(self):
        matcher = IgnoreRuleEngine.build("/node_modules\n")
        self.assertTrue(matcher.matches("node_modules", is_directory=True))
        self.assertTrue(matcher.matches("node_modules/pkg/index.js"))
        # Widened by the unanchored variant
        self.assertTrue(matcher.matches("sub/node_modules/x.js"))

    def test_anchored_directory_rule(self):
        matcher = IgnoreRuleEngine.build("/node_modules/\n")
        self.assertTrue(matcher.matches("node_modules", is_directory=True))
        self.assertTrue(matcher.matches("node_modules/anything"))
        self.assertFalse(matcher.matches(".gitignore"))
        self.assertFalse(matcher.matches("src/index.js"))

    def test_negation_reincludes(self):
        matcher = IgnoreRuleEngine.build("*.log\n!keep.log\n")
        self.assertTrue(matcher.matches("debug.log"))
        self.assertTrue(matcher.matches("logs/error.log"))
        self.assertFalse(matcher.matches("keep.log"))

    def test_later_rule_wins_over_negation(self):
        matcher = IgnoreRuleEngine.build("!keep.log\n*.log\n")
        self.assertTrue(matcher.matches("keep.log"))

    def test_backslash_paths_are_normalized(self):
        matcher = IgnoreRuleEngine.build("build/\n")
        self.assertTrue(matcher.matches("build\\out.bin"))

    def test_expansion_only_widens(self):
        rules = ["build/", "dist", "/node_modules", "/out/", "*.pyc", "docs/*.md"]
        paths = [
            "build/a",
            "dist/x",
            "node_modules/y",
            "out/z",
            "lib/m.pyc",
            "docs/readme.md",
            "src/main.py",
            "a/build/b",
            "a/out/c",
        ]
        expanded = IgnoreMatcher(rules)
        for rule in rules:
            plain = pathspec.GitIgnoreSpec.from_lines([rule])
            for path in paths:
                if plain.match_file(path):
                    self.assertTrue(
                        expanded.matches(path), f"{rule!r} no longer ignores {path!r}"
                    )

    def test_invalid_rule_is_dropped(self):
        # BaseTestCase.setUp disables logging; assertLogs needs it back on
        logging.disable(logging.NOTSET)
        with self.assertLogs("gitzip.ignore_rules", level="WARNING") as captured:
            matcher = IgnoreRuleEngine.build("*.log\n!\nbuild/\n")

        self.assertEqual(len(captured.records), 1)
        self.assertEqual(matcher.patterns, ["*.log", "*.log/", "build/", "build"])
        self.assertTrue(matcher.matches("debug.log"))
        self.assertTrue(matcher.matches("build/out.o"))
        self.assertFalse(matcher.matches("src/main.py"))

    def test_only_invalid_rules_match_nothing(self):
        # BaseTestCase.setUp disables logging; assertLogs needs it back on
        logging.disable(logging.NOTSET)
        with self.assertLogs("gitzip.ignore_rules", level="WARNING"):
            matcher = IgnoreRuleEngine.build("!\n")
        self.assertFalse(matcher)
        self.assertFalse(matcher.matches("anything"))

    def test_empty_matcher(self):
        matcher = IgnoreRuleEngine.build("")
        self.assertFalse(matcher)
        self.assertFalse(matcher.matches("anything"))
        self.assertFalse(matcher.matches(""))


class TestRuleFileLoading(unittest.IsolatedAsyncioTestCase):
    async def test_unreadable_rule_file_fails_open(self):
        matcher = await IgnoreRuleEngine.from_file(UnreadableFileSystem(), ".gitignore")
        self.assertFalse(matcher)
        self.assertFalse(matcher.matches("dist/app.js"))

    async def test_read_rule_file_raises_typed_error(self):
        with self.assertRaises(RuleFileUnreadable):
            await IgnoreRuleEngine.read_rule_file(UnreadableFileSystem(), ".gitignore")

    async def test_rule_file_contents_are_compiled(self):
        matcher = await IgnoreRuleEngine.from_file(
            InMemoryRuleFileSystem("# deps\nnode_modules/\n"), ".gitignore"
        )
        self.assertEqual(matcher.rules, ["node_modules/"])
        self.assertTrue(matcher.matches("node_modules/x"))


if __name__ == "__main__":
    unittest.main()
