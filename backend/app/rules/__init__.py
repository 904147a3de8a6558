"""
Rule engine — trigger-style business rules run around each mutation.

Repositories invoke the RuleRegistry explicitly before/after every
insert, update, and delete.  Rules receive a RuleContext (actor + clock)
instead of reading ambient session state.

Only the dependency-free pieces are re-exported here; import the
concrete rules from their modules.
"""

from app.rules.base import HookPhase, Rule
from app.rules.context import RuleContext

__all__ = ["HookPhase", "Rule", "RuleContext"]
