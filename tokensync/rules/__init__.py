from tokensync.rules.loader import load_rules, load_rules_or_default
from tokensync.rules.models import TokenSyncRules

__all__ = ["TokenSyncRules", "load_rules", "load_rules_or_default"]
