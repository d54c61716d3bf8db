"""
Centralized, user-facing exception types for the fuel station finder.

Design goals:
- Small set of meaningful categories, one per failure the user can act on.
- Actionable user guidance (remediation).
- Preserve technical context for debugging (details + chained cause).

Operations of the station finder never let these escape to the UI: they are
caught at the operation boundary and converted into a `Notice`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class AppError(Exception):
    """Base class for errors that should be presented to end users."""

    user_message: str
    remediation: str = ""
    details: str = ""

    def __str__(self) -> str:  # pragma: no cover
        parts = [self.user_message]
        if self.details:
            parts.append(self.details)
        return " - ".join(parts)


class ConfigError(AppError):
    """Missing/invalid configuration (API keys, env vars, etc.)."""


class ExternalServiceError(AppError):
    """Failures calling external services (Nominatim, OSRM, Google APIs)."""


class DataUnavailable(AppError):
    """The station dataset could not be loaded or came back empty."""


class GeocodeNotFound(AppError):
    """A place name could not be resolved to coordinates."""


class RouteNotFound(AppError):
    """The router found no driving route between two points."""


class NoReferencePoint(AppError):
    """An operation needs the user's position (or route origin) and none is set."""


class NoCandidateStations(AppError):
    """Selection was requested over an empty set of stations."""


class NoMatchingFuel(AppError):
    """No candidate station reports a price for the selected fuel."""


class LocationDenied(AppError):
    """The user's position is not available (refused, unsupported or not provided)."""


class UnknownStation(AppError):
    """A station id does not belong to the loaded collection."""


class UnsupportedFuelType(AppError):
    """The fuel selector is not one of the supported fuel types."""


# ---------------------------------------------------------------------------
# Notices (what the presentation layer receives instead of exceptions)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Notice:
    """Outcome of one finder operation, ready to be shown as a banner."""

    title: str
    message: str = ""
    level: str = "info"
    error: Optional[AppError] = None
    discarded: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def remediation(self) -> str:
        return self.error.remediation if self.error is not None else ""

    @classmethod
    def success(cls, title: str, message: str = "") -> "Notice":
        return cls(title=title, message=message, level="success")

    @classmethod
    def info(cls, title: str, message: str = "") -> "Notice":
        return cls(title=title, message=message, level="info")

    @classmethod
    def from_error(cls, error: AppError, *, title: str = "Error", level: str = "error") -> "Notice":
        return cls(title=title, message=error.user_message, level=level, error=error)

    @classmethod
    def stale(cls) -> "Notice":
        # A newer request superseded this one; the UI shows nothing.
        return cls(title="Outdated result ignored", level="info", discarded=True)
