"""Core Layer — domain types, errors, and the pure pieces of the LLM pipeline.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - No network IO; the rate limiter is the only async component (per-key locks)

Design Decisions:
    - Functional core separated from imperative shell: sanitizer, prompt builder,
      parser, and validator are plain functions testable without mocks
"""
