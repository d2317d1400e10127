"""Staleness budgets for read endpoints.

Reads are not linearizable with concurrent writes. Each read advertises how
stale its result may be through ``Cache-Control: max-age`` so clients can
choose their own refresh strategy within that bound.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Response

from gatedchat.config import Settings, get_settings
from gatedchat.invalidation import View

_BUDGETS: dict[View, Callable[[Settings], int]] = {
    View.MESSAGES: lambda s: s.message_staleness_seconds,
    View.THREAD: lambda s: s.message_staleness_seconds,
    View.THREADS: lambda s: s.thread_staleness_seconds,
    View.ACCESS: lambda s: s.access_staleness_seconds,
    View.ENTITLEMENT: lambda s: s.access_staleness_seconds,
    View.ENTITLEMENTS: lambda s: s.entitlement_list_staleness_seconds,
    View.CHAT_USERS: lambda s: s.thread_staleness_seconds,
}


def budget_for(view: View) -> int:
    """Staleness budget in seconds. Views without a budget must not be cached."""
    getter = _BUDGETS.get(view)
    return getter(get_settings()) if getter else 0


def staleness(view: View) -> Callable[[Response], None]:
    """FastAPI dependency that stamps the view's staleness budget on the response."""

    def _apply(response: Response) -> None:
        seconds = budget_for(view)
        response.headers["Cache-Control"] = f"private, max-age={seconds}" if seconds else "no-store"

    return _apply
