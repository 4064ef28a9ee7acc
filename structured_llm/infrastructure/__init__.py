"""Infrastructure Layer — provider registry, HTTP transport, and logging.

Invariants:
    - All external calls wrapped with deadline/retry/error mapping
    - Credentials leave this layer only inside an Authorization header

Design Decisions:
    - Resilient wrapper over a shared raw client (single responsibility)
"""
