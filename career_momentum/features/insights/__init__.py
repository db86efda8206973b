"""
Recommendation engine

Derives a short, ranked list of recommendation tokens from a progress summary:
- Rules are (predicate, token) pairs evaluated in a fixed priority order
- Tokens are language-free; messages.py renders them

All logic is deterministic and explainable.
"""
