"""
Shared cookie policy for the visitor session.

Why:
    The session cookie is set by the app middleware and cleared in tests; one
    helper keeps the flags consistent.

Design:
    The helper is framework-agnostic and pure: it accepts an environment string
    and returns the corresponding cookie flags.
"""

from __future__ import annotations


def cookie_opts(environment: str) -> dict:
    """Return hardened cookie flags.

    Returns a mapping with keys:
      - secure: True everywhere except plain-http local development
      - samesite: "lax"
    """
    # Lax keeps the cookie on the top-level POST-redirect-GET navigation.
    env = (environment or "").strip().lower()
    return {"secure": env not in ("dev", "test", "local"), "samesite": "lax"}
