"""Error types raised by the external-facing parts of the workflow."""

from __future__ import annotations


class LeadDiscoveryError(RuntimeError):
    """Base class for failures surfaced to the operator."""


class ConfigurationError(LeadDiscoveryError):
    """A capability is missing the credential or setting it needs."""


class SearchError(LeadDiscoveryError):
    """A single web search query failed."""


class ClassificationError(LeadDiscoveryError):
    """The LLM analysis returned an error or an unusable payload."""


class GeocodingError(LeadDiscoveryError):
    """The geocoding service could not be reached."""


class NotificationError(LeadDiscoveryError):
    """Sending a lead notification email failed."""


class ExportError(LeadDiscoveryError):
    """Writing rows to the spreadsheet failed."""
