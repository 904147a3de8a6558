"""
Repositories package — data-access layer.

Each repository file handles all DB operations for one domain entity.
Policy and claim writes run the rule hooks through the RuleRegistry;
everything else is plain data access.

Convention:
    - One file per aggregate root (e.g., policies.py, claims.py)
    - All functions accept `AsyncSession` as the first argument
    - Rule-guarded writes also take a `RuleContext` (actor + clock)
    - Use `flush()` internally; commit/rollback belongs to the caller
      (`get_db` in the API, `run_in_transaction` for retried work)
    - Store rejections are raised as RuleError subclasses
"""
