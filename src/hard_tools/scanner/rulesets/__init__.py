"""
Ruleset registry.

Rulesets are looked up by the name used on the command line:

    runtime  - Workers runtime compatibility
    kv       - Workers KV usage patterns
    secrets  - Secret handling
    d1       - D1 migrations and schema
"""

from ...errors import UnknownRulesetError
from .base import Ruleset
from .runtime import RuntimeRuleset
from .schema import SchemaRuleset
from .secrets import SecretsRuleset
from .storage import StorageRuleset

RULESETS: dict[str, type[Ruleset]] = {
    RuntimeRuleset.name: RuntimeRuleset,
    StorageRuleset.name: StorageRuleset,
    SecretsRuleset.name: SecretsRuleset,
    SchemaRuleset.name: SchemaRuleset,
}


def available_rulesets() -> list[str]:
    return list(RULESETS)


def get_ruleset(name: str, **options) -> Ruleset:
    """
    Create a ruleset by name.

    Args:
        name: Registered ruleset name
        **options: Passed to the ruleset constructor (e.g. check_config=False)

    Raises:
        UnknownRulesetError: If no ruleset has this name
    """
    try:
        ruleset_class = RULESETS[name]
    except KeyError:
        raise UnknownRulesetError(
            f"Unknown ruleset '{name}'. Available: {', '.join(RULESETS)}"
        ) from None
    return ruleset_class(**options)


__all__ = [
    "RULESETS",
    "Ruleset",
    "RuntimeRuleset",
    "SchemaRuleset",
    "SecretsRuleset",
    "StorageRuleset",
    "available_rulesets",
    "get_ruleset",
]
