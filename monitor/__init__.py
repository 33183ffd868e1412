"""Monitoring core: frame decoding, event translation, sessions, broadcast.

Lazy imports keep ``import monitor.framing`` (and friends) free of the
asyncio/subprocess machinery in ``monitor.sessions``.
"""


def __getattr__(name: str):
    if name in ("SessionRegistry", "Session", "SessionState"):
        from . import sessions
        return getattr(sessions, name)
    if name in ("BroadcastHub", "Subscription"):
        from . import hub
        return getattr(hub, name)
    if name == "translate_frame":
        from .translator import translate_frame
        return translate_frame
    raise AttributeError(f"module 'monitor' has no attribute {name!r}")
