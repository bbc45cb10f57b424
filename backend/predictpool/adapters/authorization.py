from __future__ import annotations

from predictpool.errors import NotAuthorized


class CallerAuthorizer:
    """Accept only the identity that authenticated the current request."""

    def __init__(self, caller: str | None) -> None:
        self.caller = caller

    def require_authorized(self, identity: str) -> None:
        if not self.caller or self.caller != identity:
            raise NotAuthorized(
                f"Caller {self.caller!r} may not act as {identity!r}",
                caller=self.caller,
                identity=identity,
            )


class AllowAllAuthorizer:
    """Trust every identity; for tests and trusted batch jobs."""

    def require_authorized(self, identity: str) -> None:
        return None


__all__ = ["AllowAllAuthorizer", "CallerAuthorizer"]
