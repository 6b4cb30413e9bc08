"""
Secret hygiene ruleset.

Detects hardcoded credentials in source files, process.env usage (Workers
read secrets from the `env` parameter), committed .env files, and secrets
placed in wrangler.toml, which is conventionally version-controlled.
"""

import logging
import re
from pathlib import Path

from ..models import Rule, ScannedFile, Severity, Violation, rule, snippet
from .base import Ruleset

logger = logging.getLogger(__name__)

_I = re.IGNORECASE
_WRANGLER_SECRET_FIX = "Use wrangler secret: wrangler secret put"

# Critical provider token shapes; name-based rules skip lines that hold one
_PROVIDER_TOKEN = (
    r"""['"`](?:sk[-_](?:live|test)[-_][a-zA-Z0-9]{20,}"""
    r"|(?:AKIA|ABIA|ACCA|ASIA)[A-Z0-9]{16}"
    r"|gh[po]_[a-zA-Z0-9]{36}"
    r"|xox[baprs]-[a-zA-Z0-9-]{10,}"
    r"""|(?:postgres(?:ql)?|mysql|mongodb(?:\+srv)?|redis):\/\/[^'"`\s]+:[^'"`\s]+@[^'"`]+"""
    r"""|(?:cf|cloudflare)[-_]?[a-zA-Z0-9]{32,})['"`]"""
)

SECRET_RULES = (
    # API keys
    rule(
        r"""['"`]sk[-_](?:live|test)[-_][a-zA-Z0-9]{20,}['"`]""",
        "stripe-key",
        Severity.CRITICAL,
        "Hardcoded Stripe API key detected",
        f"{_WRANGLER_SECRET_FIX} STRIPE_SECRET_KEY",
        "Stripe keys should never be in source code",
    ),
    rule(
        r"""['"`]pk[-_](?:live|test)[-_][a-zA-Z0-9]{20,}['"`]""",
        "stripe-publishable-key",
        Severity.WARNING,
        "Hardcoded Stripe publishable key - consider using env",
        "Publishable keys are public, but env.STRIPE_PUBLISHABLE_KEY keeps configuration in one place",
        "Publishable keys are safe to expose but env vars are cleaner",
    ),
    rule(
        r"""['"`](?:AKIA|ABIA|ACCA|ASIA)[A-Z0-9]{16}['"`]""",
        "aws-key",
        Severity.CRITICAL,
        "Hardcoded AWS access key detected",
        f"{_WRANGLER_SECRET_FIX} AWS_ACCESS_KEY_ID",
        "AWS keys should never be in source code",
    ),
    rule(
        r"""['"`]ghp_[a-zA-Z0-9]{36}['"`]""",
        "github-pat",
        Severity.CRITICAL,
        "Hardcoded GitHub Personal Access Token detected",
        f"{_WRANGLER_SECRET_FIX} GITHUB_TOKEN",
        "GitHub PATs should never be in source code",
    ),
    rule(
        r"""['"`]gho_[a-zA-Z0-9]{36}['"`]""",
        "github-oauth",
        Severity.CRITICAL,
        "Hardcoded GitHub OAuth token detected",
        f"{_WRANGLER_SECRET_FIX} GITHUB_OAUTH_TOKEN",
        "OAuth tokens should never be in source code",
    ),
    rule(
        r"""['"`]xox[baprs]-[a-zA-Z0-9-]{10,}['"`]""",
        "slack-token",
        Severity.CRITICAL,
        "Hardcoded Slack token detected",
        f"{_WRANGLER_SECRET_FIX} SLACK_TOKEN",
        "Slack tokens should never be in source code",
    ),
    rule(
        r"""['"`](?:bearer|token)\s+[a-zA-Z0-9_-]{20,}['"`]""",
        "bearer-token",
        Severity.WARNING,
        "Potential hardcoded bearer token detected",
        "Use wrangler secret for API tokens",
        "Bearer tokens should be stored as secrets",
        flags=_I,
    ),
    # Database credentials
    rule(
        r"""['"`](?:postgres(?:ql)?|mysql|mongodb(?:\+srv)?|redis):\/\/[^'"`\s]+:[^'"`\s]+@[^'"`]+['"`]""",
        "database-url",
        Severity.CRITICAL,
        "Hardcoded database connection string with credentials",
        f"{_WRANGLER_SECRET_FIX} DATABASE_URL",
        "Database credentials should never be in source code",
        flags=_I,
    ),
    rule(
        r"""password\s*[:=]\s*['"`][^'"`]{8,}['"`]""",
        "password",
        Severity.CRITICAL,
        "Hardcoded password detected",
        "Use wrangler secret for passwords",
        "Passwords should never be in source code",
        exclude=_PROVIDER_TOKEN,
        flags=_I,
    ),
    # High-entropy blobs
    rule(
        r"""['"`][a-f0-9]{32}['"`]""",
        "hex-secret",
        Severity.INFO,
        "32-character hex string - may be an API key or hash",
        "If this is a secret, use wrangler secret",
        "Review if this is a secret that should be in env",
    ),
    rule(
        r"""['"`][A-Za-z0-9+/]{40,}={0,2}['"`]""",
        "base64-secret",
        Severity.INFO,
        "Long base64 string - may be an encoded secret",
        "If this is a secret, use wrangler secret",
        "Review if this is a secret that should be in env",
    ),
    rule(
        r"""(?:api[-_]?key|apikey|secret[-_]?key|private[-_]?key|access[-_]?token|auth[-_]?token)\s*[:=]\s*['"`][^'"`]{10,}['"`]""",
        "generic-secret",
        Severity.CRITICAL,
        "Hardcoded API key or secret detected",
        f"{_WRANGLER_SECRET_FIX} <SECRET_NAME>",
        "API keys and secrets should never be in source code",
        exclude=_PROVIDER_TOKEN,
        flags=_I,
    ),
    # OAuth and auth secrets
    rule(
        r"""client[-_]?secret\s*[:=]\s*['"`][^'"`]{10,}['"`]""",
        "oauth-secret",
        Severity.CRITICAL,
        "Hardcoded OAuth client secret detected",
        f"{_WRANGLER_SECRET_FIX} OAUTH_CLIENT_SECRET",
        "OAuth secrets should never be in source code",
        exclude=_PROVIDER_TOKEN,
        flags=_I,
    ),
    rule(
        r"""jwt[-_]?secret\s*[:=]\s*['"`][^'"`]{10,}['"`]""",
        "jwt-secret",
        Severity.CRITICAL,
        "Hardcoded JWT secret detected",
        f"{_WRANGLER_SECRET_FIX} JWT_SECRET",
        "JWT secrets should never be in source code",
        exclude=_PROVIDER_TOKEN,
        flags=_I,
    ),
    # Cloudflare
    rule(
        r"""['"`](?:cf|cloudflare)[-_]?[a-zA-Z0-9]{32,}['"`]""",
        "cloudflare-token",
        Severity.CRITICAL,
        "Potential Cloudflare API token detected",
        f"{_WRANGLER_SECRET_FIX} CF_API_TOKEN",
        "Cloudflare tokens should never be in source code",
        flags=_I,
    ),
    # Configuration API
    rule(
        r"process\.env\.",
        "process-env",
        Severity.CRITICAL,
        "process.env not available in Workers runtime",
        "Use env parameter: export default { fetch(request, env) { env.MY_SECRET } }",
        "Workers use env parameter, not process.env",
    ),
    rule(
        r"""env\.\w+\s*(?:\|\||\?\?)\s*['"`][^'"`]{10,}['"`]""",
        "fallback-secret",
        Severity.WARNING,
        "Secret with hardcoded fallback value",
        "Remove fallback - secrets should fail explicitly if missing",
        "Fallback values for secrets can mask configuration errors",
    ),
)

# Only value-shaped rules apply to wrangler.toml
CONFIG_SECRET_RULES = tuple(
    r for r in SECRET_RULES if r.type not in {"process-env", "fallback-secret"}
)

SECRET_KEY_NAME = re.compile(r"secret|key|token|password|auth", re.IGNORECASE)
SECTION_HEADER = re.compile(r"^\s*\[\[?([^\]]+)\]\]?\s*$")

DEPLOYMENT_CONFIG = "wrangler.toml"
DEPLOYMENT_CONFIG_EXAMPLE = "wrangler.toml.example"

LOCK_FILES = frozenset(
    {"package-lock.json", "pnpm-lock.yaml", "yarn.lock", "bun.lockb"}
)


def is_env_file(path: Path) -> bool:
    return path.name.startswith(".env")


class SecretsRuleset(Ruleset):
    """Hardcoded credentials and wrong configuration APIs."""

    name = "secrets"
    description = "Secret handling"
    default_target = "src"
    extensions = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".json")
    skip_files = LOCK_FILES
    rules = SECRET_RULES

    def __init__(self, check_config: bool = True):
        self.check_config = check_config

    def accepts(self, path: Path) -> bool:
        if path.name in self.skip_files:
            return False
        return is_env_file(path) or path.suffix in self.extensions

    def skip_line(self, line: str) -> bool:
        stripped = line.strip()
        return stripped.startswith(("//", "*", "#", "/*"))

    def check_file(self, scanned: ScannedFile) -> list[Violation]:
        if is_env_file(scanned.path):
            # Contents are never echoed into the report
            return [
                Violation(
                    file=scanned.display,
                    line=0,
                    code="",
                    type="env-file",
                    severity=Severity.WARNING,
                    message=".env file detected - ensure it's in .gitignore",
                    fix="Add .env* to .gitignore and use wrangler secret for production",
                    context=".env files should not be committed to git",
                )
            ]
        return super().check_file(scanned)

    def check_tree(
        self, target: Path, files: list[ScannedFile], settings
    ) -> list[Violation]:
        if not self.check_config:
            return []
        project_root = target if target.is_dir() else target.parent
        return check_deployment_config(project_root)


def check_deployment_config(project_root: Path) -> list[Violation]:
    """
    Check wrangler.toml for secrets that belong in `wrangler secret`.

    Args:
        project_root: Directory expected to hold wrangler.toml

    Returns:
        Violations found in wrangler.toml and the example file notice
    """
    config_path = project_root / DEPLOYMENT_CONFIG
    if not config_path.is_file():
        return []

    try:
        content = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Skipping unreadable {config_path}: {e}")
        return []

    display = str(config_path)
    violations: list[Violation] = []
    section = None

    for index, line in enumerate(content.split("\n"), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        header = SECTION_HEADER.match(line)
        if header:
            section = header.group(1).strip()
            continue

        for secret_rule in CONFIG_SECRET_RULES:
            if secret_rule.matches(line):
                violations.append(_secret_in_config(secret_rule, display, index, line))

        if section == "vars" and "=" in line:
            key = line.split("=", 1)[0]
            if SECRET_KEY_NAME.search(key):
                violations.append(
                    Violation(
                        file=display,
                        line=index,
                        code=snippet(line),
                        type="secret-in-vars",
                        severity=Severity.WARNING,
                        message=f"Potential secret in [vars] section: {key.strip()}",
                        fix="Move to wrangler secret: wrangler secret put <NAME>",
                        context="[vars] are visible in wrangler.toml - use secrets for sensitive data",
                    )
                )

    example_path = project_root / DEPLOYMENT_CONFIG_EXAMPLE
    if example_path.is_file():
        violations.append(
            Violation(
                file=str(example_path),
                line=0,
                code="",
                type="example-exists",
                severity=Severity.INFO,
                message="wrangler.toml.example found - good practice for documenting required secrets",
                fix=None,
                context="Example files help developers know which secrets to configure",
            )
        )

    return violations


def _secret_in_config(
    secret_rule: Rule, display: str, line_number: int, line: str
) -> Violation:
    # Always critical here: wrangler.toml is committed
    return Violation(
        file=display,
        line=line_number,
        code=snippet(line),
        type="secret-in-config",
        severity=Severity.CRITICAL,
        message=f"{secret_rule.message} in wrangler.toml",
        fix="Remove from wrangler.toml and use: wrangler secret put <NAME>",
        context="wrangler.toml is committed to git - secrets should use wrangler secret",
    )
