"""Unit tests for the runtime and kv rulesets and the ruleset registry."""

import pytest

from hard_tools.errors import UnknownRulesetError
from hard_tools.scanner import Severity, available_rulesets, get_ruleset


@pytest.fixture
def scan_source(engine, tmp_path, write_file):
    """Scan one source file with a named ruleset and return the report."""

    def _scan(ruleset: str, content: str, name: str = "src/worker.ts"):
        write_file(name, content)
        return engine.scan(tmp_path / "src", get_ruleset(ruleset))

    return _scan


class TestRegistry:
    """Tests for ruleset lookup."""

    def test_available_rulesets(self):
        """All four rulesets are registered under their CLI names."""
        assert available_rulesets() == ["runtime", "kv", "secrets", "d1"]

    def test_unknown_ruleset_raises(self):
        """Unknown names raise with the list of valid names."""
        with pytest.raises(UnknownRulesetError, match="runtime"):
            get_ruleset("graphql")

    @pytest.mark.parametrize(
        "name,target",
        [("runtime", "src"), ("kv", "src"), ("secrets", "src"), ("d1", "migrations")],
    )
    def test_default_targets(self, name, target):
        """Each ruleset names its conventional source root."""
        assert get_ruleset(name).default_target == target


class TestRuntimeRuleset:
    """Tests for Workers runtime compatibility rules."""

    @pytest.mark.parametrize(
        "line",
        [
            "import fs from 'fs';",
            "import { readFile } from 'node:fs/promises';",
            "import * as path from \"path\";",
            "import os from 'os';",
            "import { Buffer } from 'node:buffer';",
            "import { exec } from 'child_process';",
            "import crypto from 'node:crypto';",
            "const key = process.env.API_KEY;",
            "process.exit(1);",
            "const here = __dirname;",
            "const lib = require('lib');",
            "module.exports = handler;",
            "const bytes = Buffer.from(text);",
            "const buf = Buffer.alloc(16);",
            "const old = new Buffer(8);",
            "const data = readFileSync('config.json');",
        ],
    )
    def test_node_constructs_are_critical(self, scan_source, line):
        """Each Node-only construct yields exactly one critical finding with a fix."""
        report = scan_source("runtime", line + "\n")

        assert report.total == 1
        violation = report.violations[0]
        assert violation.severity is Severity.CRITICAL
        assert violation.line == 1
        assert violation.fix

    def test_clean_worker(self, scan_source):
        """Platform-native code produces no findings."""
        report = scan_source(
            "runtime",
            "export default {\n"
            "  async fetch(request, env) {\n"
            "    const bytes = new TextEncoder().encode(env.GREETING);\n"
            "    const digest = await crypto.subtle.digest('SHA-256', bytes);\n"
            "    return new Response(digest);\n"
            "  },\n"
            "};\n",
        )

        assert report.total == 0
        assert report.critical == report.warnings == report.info == 0

    def test_only_script_extensions(self, scan_source):
        """Markdown and JSON files are not runtime-checked."""
        report = scan_source("runtime", "require('fs')\n", name="src/notes.md")

        assert report.files_scanned == 0


class TestStorageRuleset:
    """Tests for KV usage rules."""

    def test_put_without_options_warns_missing_ttl(self, scan_source):
        """A put() with no options object is one missing-TTL warning."""
        report = scan_source("kv", "await env.CACHE.put(key, value);\n")

        assert report.total == 1
        assert report.violations[0].type == "missing-ttl"
        assert report.violations[0].severity is Severity.WARNING

    def test_put_with_expiration_is_clean(self, scan_source):
        """The same put() with expirationTtl yields nothing."""
        report = scan_source("kv", "await env.CACHE.put(key, value, { expirationTtl: 3600 });\n")

        assert report.total == 0

    def test_put_with_options_but_no_expiration(self, scan_source):
        """Options that omit expiration still warn."""
        report = scan_source("kv", "await env.CACHE.put(key, value, { metadata: owner });\n")

        assert [(v.type, v.severity) for v in report.violations] == [
            ("missing-ttl", Severity.WARNING)
        ]

    def test_rate_limiting_is_critical(self, scan_source):
        """Rate limiting on an eventually consistent store is flagged once."""
        report = scan_source("kv", "const hits = await env.RATE_LIMIT.get(ip);\n")

        assert [(v.type, v.severity) for v in report.violations] == [
            ("rate-limit-kv", Severity.CRITICAL)
        ]

    def test_rate_limit_key_matching_both_rules_reported_once(self, scan_source):
        """A line matching both rate-limit shapes yields one finding."""
        report = scan_source(
            "kv", "const rateLimit = await env.KV.get(`rate_limit:${ip}`);\n"
        )

        assert [v.type for v in report.violations] == ["rate-limit-kv"]

    def test_non_atomic_increment(self, scan_source):
        """get-modify-put counters are critical."""
        report = scan_source("kv", "const next = (await env.COUNTS.get(key)) + 1;\n")

        assert [(v.type, v.severity) for v in report.violations] == [
            ("non-atomic-increment", Severity.CRITICAL)
        ]

    def test_missing_await(self, scan_source):
        """get and put without await are critical, delete is a warning."""
        report = scan_source(
            "kv",
            "const v = env.CACHE.get(key);\n"
            "env.CACHE.put(key, value, { expirationTtl: 60 });\n"
            "env.CACHE.delete(key);\n",
        )

        assert [(v.type, v.severity) for v in report.violations] == [
            ("missing-await-get", Severity.CRITICAL),
            ("missing-await-put", Severity.CRITICAL),
            ("missing-await-delete", Severity.WARNING),
        ]

    @pytest.mark.parametrize(
        "line",
        [
            "const v = await c.env.CACHE.get(`user:${id}`);\n",
            "await this.env.CACHE.put(`user:${id}`, value, { expirationTtl: 60 });\n",
            "await ctx.env.CACHE.delete(`user:${id}`);\n",
        ],
    )
    def test_awaited_through_receiver(self, scan_source, line):
        """Awaited calls on c.env or this.env are not missing an await."""
        report = scan_source("kv", line)

        assert not [v for v in report.violations if v.type.startswith("missing-await")]
        assert report.critical == 0

    def test_unawaited_through_receiver(self, scan_source):
        """A Hono-style c.env call without await is still flagged."""
        report = scan_source("kv", "const v = c.env.CACHE.get(`user:${id}`);\n")

        assert [(v.type, v.severity) for v in report.violations] == [
            ("missing-await-get", Severity.CRITICAL)
        ]

    def test_in_memory_caches(self, scan_source):
        """Module-level caches do not survive between requests."""
        report = scan_source("kv", "let cache = {};\nconst userCache = new Map();\n")

        assert [v.type for v in report.violations] == ["in-memory-cache", "in-memory-cache"]
        assert all(v.severity is Severity.WARNING for v in report.violations)

    def test_pii_in_key(self, scan_source):
        """Emails in keys are visible in the dashboard."""
        report = scan_source("kv", "const u = await env.USERS.get(`email:${email}`);\n")

        assert [(v.type, v.severity) for v in report.violations] == [
            ("pii-in-key", Severity.CRITICAL)
        ]

    def test_missing_prefix_is_info(self, scan_source):
        """Bare keys get an informational namespacing hint."""
        report = scan_source("kv", 'const s = await env.CONFIG.get("settings");\n')

        assert [(v.type, v.severity) for v in report.violations] == [
            ("missing-prefix", Severity.INFO)
        ]

    def test_session_without_ttl(self, scan_source):
        """Session writes without TTL get both TTL warnings."""
        report = scan_source("kv", "await env.SESSIONS.put(sessionId, data);\n")

        assert {v.type for v in report.violations} == {"missing-ttl", "session-no-ttl"}
        assert report.warnings == 2

    def test_file_without_kv_usage(self, scan_source):
        """Files that never touch KV contribute nothing."""
        report = scan_source("kv", "export const add = (a, b) => a + b;\n")

        assert report.files_scanned == 1
        assert report.total == 0
