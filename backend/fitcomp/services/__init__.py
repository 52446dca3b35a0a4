"""Lazy service exports so importing one service does not pull in the others."""

__all__ = [
    "audit_service",
    "competition_service",
    "entry_service",
    "session_service",
    "user_service",
]


def __getattr__(name: str):
    if name == "audit_service":
        from fitcomp.services.audit_service import audit_service

        return audit_service
    if name == "competition_service":
        from fitcomp.services.competition_service import competition_service

        return competition_service
    if name == "entry_service":
        from fitcomp.services.entry_service import entry_service

        return entry_service
    if name == "session_service":
        from fitcomp.services.session_service import session_service

        return session_service
    if name == "user_service":
        from fitcomp.services.user_service import user_service

        return user_service
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
