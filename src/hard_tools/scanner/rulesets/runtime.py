"""
Runtime compatibility ruleset.

Flags Node.js APIs that do not exist in the Workers isolate: filesystem and
OS modules, Buffer, synchronous I/O, CommonJS and process.env (Workers inject
configuration through the `env` parameter of the fetch handler).
"""

from ..models import Severity, rule
from .base import Ruleset

JS_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs")


def _node_import(module: str) -> str:
    # import x from 'fs' / import { y } from "node:fs" / import * as z from 'fs/promises'
    return rf"""import\s+.*\s+from\s+['"](?:node:)?{module}(?:/\w+)?['"]"""


RUNTIME_RULES = (
    # Node.js built-in modules
    rule(
        _node_import("fs"),
        "node-api",
        Severity.CRITICAL,
        "fs module not available in Workers",
        "Use R2 for file storage or KV for key-value data",
    ),
    rule(
        _node_import("path"),
        "node-api",
        Severity.CRITICAL,
        "path module not available in Workers",
        "Use the URL API for path manipulation",
    ),
    rule(
        _node_import("os"),
        "node-api",
        Severity.CRITICAL,
        "os module not available in Workers",
        "Workers run in V8 isolates, not OS processes",
    ),
    rule(
        _node_import("buffer"),
        "node-api",
        Severity.CRITICAL,
        "Buffer not available in Workers",
        "Use Uint8Array or ArrayBuffer instead",
    ),
    rule(
        _node_import("child_process"),
        "node-api",
        Severity.CRITICAL,
        "child_process not available in Workers",
        "Move process execution out of the Worker (Queues or an external service)",
    ),
    rule(
        r"""import\s+(?:\*\s+as\s+)?crypto\s+from\s+['"](?:node:)?crypto['"]""",
        "node-api",
        Severity.CRITICAL,
        "Node crypto module not available",
        "Use the Web Crypto API: crypto.subtle",
    ),
    # Process environment
    rule(
        r"process\.env\b",
        "env-access",
        Severity.CRITICAL,
        "process.env not available in Workers",
        "Use the env parameter: env.VARIABLE_NAME",
    ),
    rule(
        r"process\.exit\b",
        "process-api",
        Severity.CRITICAL,
        "process.exit not available in Workers",
        "Return a Response with an appropriate status code",
    ),
    rule(
        r"\b__(?:dirname|filename)\b",
        "process-api",
        Severity.CRITICAL,
        "__dirname/__filename not available in Workers",
        "Workers have no filesystem; use import.meta.url or bundle the asset",
    ),
    # CommonJS
    rule(
        r"\brequire\s*\(",
        "commonjs",
        Severity.CRITICAL,
        "require() not supported in Workers",
        'Use ES modules: import { x } from "module"',
    ),
    rule(
        r"\bmodule\.exports\b",
        "commonjs",
        Severity.CRITICAL,
        "module.exports not supported in Workers",
        "Use ES modules: export default",
    ),
    # Buffer usage without import
    rule(
        r"\bBuffer\.from\s*\(",
        "node-api",
        Severity.CRITICAL,
        "Buffer.from() not available",
        "Use new Uint8Array() or new TextEncoder().encode()",
    ),
    rule(
        r"\bBuffer\.alloc\s*\(",
        "node-api",
        Severity.CRITICAL,
        "Buffer.alloc() not available",
        "Use new Uint8Array(size)",
    ),
    rule(
        r"\bnew\s+Buffer\s*\(",
        "node-api",
        Severity.CRITICAL,
        "new Buffer() not available",
        "Use new Uint8Array() or new TextEncoder().encode()",
    ),
    # Synchronous I/O
    rule(
        r"\b(?:readFileSync|writeFileSync|existsSync|readdirSync|statSync)\b",
        "sync-io",
        Severity.CRITICAL,
        "Synchronous file operations not available",
        "Workers have no filesystem access - use KV or R2",
    ),
)


class RuntimeRuleset(Ruleset):
    """Node.js APIs that break inside the Workers runtime."""

    name = "runtime"
    description = "Workers runtime compatibility"
    default_target = "src"
    extensions = JS_EXTENSIONS
    rules = RUNTIME_RULES
