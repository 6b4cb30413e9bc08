"""
KV storage ruleset.

Workers KV is eventually consistent: fine for cached reads, wrong for
counters and rate limits. These rules check TTL usage, state management
anti-patterns, key naming and missing awaits on KV calls.
"""

import re

from ..models import Severity, rule
from .base import Ruleset
from .runtime import JS_EXTENSIONS

_EXPIRATION = r"expirationTtl|expiration\b"
# Awaited binding access through a receiver: c.env.KV.get(...), this.env.KV.put(...)
_AWAITED_VIA = r"\bawait\s+(?:[\w$]+\.)*env\.\w+\."

KV_RULES = (
    # Missing TTL
    rule(
        r"\.put\s*\(\s*[^,]+,\s*[^,)]+\s*\)(?!\s*[,;]?\s*\{)",
        "missing-ttl",
        Severity.WARNING,
        "KV put() without options object - likely missing TTL",
        "Add expirationTtl: await env.KV.put(key, value, { expirationTtl: 3600 })",
        "Data persists indefinitely without TTL, causing storage bloat",
        exclude=_EXPIRATION,
    ),
    rule(
        r"\.put\s*\([^)]*\{[^}]*\}",
        "missing-ttl",
        Severity.WARNING,
        "KV put() with options but no expirationTtl",
        "Add expirationTtl to options: { expirationTtl: 3600 }",
        "Consider if this data should expire",
        exclude=_EXPIRATION,
    ),
    # Rate limiting
    rule(
        r"rate[-_]?limit.*\.get\s*\(",
        "rate-limit-kv",
        Severity.CRITICAL,
        "Rate limiting with KV detected - KV is eventually consistent",
        "Use Durable Objects for rate limiting - they provide strong consistency",
        "KV eventual consistency causes race conditions in rate limiting",
        flags=re.IGNORECASE,
    ),
    rule(
        r"\.get\s*\([^)]*rate[-_]?limit",
        "rate-limit-kv",
        Severity.CRITICAL,
        "Rate limiting with KV detected - KV is eventually consistent",
        "Use Durable Objects for rate limiting - they provide strong consistency",
        "Two concurrent requests can both pass the rate limit check",
        exclude=r"rate[-_]?limit.*\.get\s*\(",
        flags=re.IGNORECASE,
    ),
    # In-memory state
    rule(
        r"^\s*(?:let|var)\s+\w*cache\w*\s*=\s*(?:new\s+Map|\{\})",
        "in-memory-cache",
        Severity.WARNING,
        "In-memory cache detected - will not persist between requests",
        "Use KV for caching: await env.KV.put(key, value, { expirationTtl: 300 })",
        "Workers are stateless - in-memory state is lost between requests",
        flags=re.IGNORECASE,
    ),
    rule(
        r"^\s*const\s+\w*cache\w*\s*=\s*new\s+Map",
        "in-memory-cache",
        Severity.WARNING,
        "In-memory Map cache detected - will not persist between requests",
        "Use the Cache API for ephemeral caching or KV for persistent caching",
        "Workers are stateless - use bindings for state",
        flags=re.IGNORECASE,
    ),
    # Key naming
    rule(
        r"""\.(?:get|put|delete)\s*\(\s*['"`][^'"`]*(?:email|password|ssn|credit[-_]?card)[^'"`]*['"`]""",
        "pii-in-key",
        Severity.CRITICAL,
        "Potential PII in KV key - keys are visible in logs and metrics",
        "Hash PII before using it as a key: crypto.subtle.digest('SHA-256', data)",
        "KV keys appear in the Cloudflare dashboard and logs",
        flags=re.IGNORECASE,
    ),
    rule(
        r"""\.(?:get|put|delete)\s*\(\s*['"`][a-z0-9]+['"`]\s*[,)]""",
        "missing-prefix",
        Severity.INFO,
        "KV key without namespace prefix - consider adding prefix for organization",
        "Use prefixed keys: 'user:123', 'session:abc', 'cache:page:home'",
        "Prefixes help organize keys and enable bulk operations",
        flags=re.IGNORECASE,
    ),
    # Missing await
    rule(
        r"(?<!await\s)\benv\.\w+\.get\s*\([^)]+\)\s*(?:[;,]|$)",
        "missing-await-get",
        Severity.CRITICAL,
        "KV get() without await - returns Promise, not value",
        "Add await: const value = await env.KV.get(key)",
        "Without await, you get a Promise object instead of the value",
        exclude=_AWAITED_VIA + r"get\b",
    ),
    rule(
        r"(?<!await\s)\benv\.\w+\.put\s*\([^)]+\)\s*(?:[;,]|$)",
        "missing-await-put",
        Severity.CRITICAL,
        "KV put() without await - operation may not complete before response",
        "Add await: await env.KV.put(key, value)",
        "Without await, the write may not complete before the Worker returns",
        exclude=_AWAITED_VIA + r"put\b",
    ),
    rule(
        r"(?<!await\s)\benv\.\w+\.delete\s*\([^)]+\)\s*(?:[;,]|$)",
        "missing-await-delete",
        Severity.WARNING,
        "KV delete() without await - operation may not complete",
        "Add await: await env.KV.delete(key)",
        "Without await, the delete may not complete before the Worker returns",
        exclude=_AWAITED_VIA + r"delete\b",
    ),
    # Value size
    rule(
        r"\.put\s*\([^;]*JSON\.stringify\s*\(",
        "large-json",
        Severity.INFO,
        "Storing JSON in KV - ensure value is under 25MB limit",
        "For large objects, consider R2 storage instead of KV",
        "KV has a 25MB value limit; R2 is better for large objects",
    ),
    # Atomic operations
    rule(
        r"\.get\s*\([^)]+\)[^;]*(?:\+\+|\+\s*1\b)",
        "non-atomic-increment",
        Severity.CRITICAL,
        "Non-atomic increment pattern detected - race condition risk",
        "Use Durable Objects for counters that need atomic operations",
        "get-modify-put is not atomic in KV - concurrent requests cause lost updates",
    ),
    # Sessions
    rule(
        r"session.*\.put\s*\(",
        "session-no-ttl",
        Severity.WARNING,
        "Session storage without TTL - sessions should expire",
        "Add TTL for sessions: { expirationTtl: 86400 } (24 hours)",
        "Sessions without TTL persist forever, causing security and storage issues",
        exclude=_EXPIRATION,
        flags=re.IGNORECASE,
    ),
)

# Must stay a necessary condition of every rule in KV_RULES
KV_USAGE_HINT = re.compile(r"\.(?:get|put|delete|list)\s*\(|cache", re.IGNORECASE)


class StorageRuleset(Ruleset):
    """Workers KV usage anti-patterns."""

    name = "kv"
    description = "Workers KV usage patterns"
    default_target = "src"
    extensions = JS_EXTENSIONS
    rules = KV_RULES

    def prefilter(self, content: str) -> bool:
        return bool(KV_USAGE_HINT.search(content))
