"""Scope tree: hierarchical identifiers deciding what a cancel call reaches.

A scope is the path of region ids from the root of the cancellation tree down
to a nested region (or to one registered suspension). Containment is the
prefix relation, so the empty path is contained in everything.

Example:
    ```python
    from klaw_strand.scope import ROOT, extend, within

    outer = extend(ROOT, 1)      # (1,)
    inner = extend(outer, 7)     # (1, 7)
    assert within(inner, outer)
    assert not within(outer, inner)
    assert within(outer, ROOT)
    ```
"""

from __future__ import annotations

__all__ = ['ROOT', 'Scope', 'extend', 'within']

type Scope = tuple[int, ...]

ROOT: Scope = ()


def within(child: Scope, parent: Scope) -> bool:
    """Return True if `child` lies inside `parent` (parent is a prefix of child)."""
    return child[: len(parent)] == parent


def extend(scope: Scope, ident: int) -> Scope:
    """Return the scope one level below `scope`."""
    return (*scope, ident)
