"""
Error taxonomy for the matching engine.

Each error carries a stable ``code`` and the HTTP status the web layer
should map it to.
"""


class MatchingError(Exception):
    """Base class for matching engine errors."""

    code = "MATCHING_ERROR"
    http_status = 500


class MissingContentError(MatchingError):
    """Neither text nor URL was supplied for an offer to parse."""

    code = "MISSING_CONTENT"
    http_status = 400


class IncompleteProfileError(MatchingError):
    """Candidate profile has no resolvable skill list."""

    code = "INCOMPLETE_PROFILE"
    http_status = 422


class NotFoundError(MatchingError):
    """Offer, candidate or skill does not exist."""

    code = "NOT_FOUND"
    http_status = 404


class CatalogUnavailableError(MatchingError):
    """The skill catalog could not be queried."""

    code = "CATALOG_UNAVAILABLE"
    http_status = 503


class InvalidOfferUrlError(MatchingError):
    """Offer URL is malformed, not http(s), or points to a private host."""

    code = "INVALID_OFFER_URL"
    http_status = 400


class OfferFetchError(MatchingError):
    """Offer page could not be downloaded."""

    code = "OFFER_FETCH_FAILED"
    http_status = 502
