"""Path formatting helpers.

Paths read like attribute access: "Child.Name", "Items[2].Value". A list
locator is glued to whatever precedes it, everything else is joined with ".".
"""

from __future__ import annotations


def join_path(head: str | None, tail: str | None) -> str:
    """Join two path fragments, skipping empty ones."""
    if not head:
        return tail or ""
    if not tail:
        return head
    if tail.startswith("["):
        return head + tail
    return f"{head}.{tail}"


def item_locator(index: int) -> str:
    return f"[{index}]"


def item_path(index: int, property_name: str | None) -> str:
    """Leaf segment for a list's item-level change: "[i].prop" or "[i]"."""
    return join_path(item_locator(index), property_name)
