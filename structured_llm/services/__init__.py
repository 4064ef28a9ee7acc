"""Services Layer — the task runner and the AI task catalog.

Invariants:
    - LlmTaskRunner is the only composer of core + infrastructure pieces
    - Task catalog uses explicit dict mapping (no auto-discovery)
"""
