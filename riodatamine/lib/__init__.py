from riodatamine.lib.hooks import action, filter, hooks
from riodatamine.lib.prune import prune

__all__ = [
    "action",
    "filter",
    "hooks",
    "prune",
]
