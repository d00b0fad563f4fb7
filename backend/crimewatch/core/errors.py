"""Error types shared by the ingest and analytics services."""


class FeedError(Exception):
    """The incident feed could not be fetched or did not return a JSON array."""


class LocationQueryError(ValueError):
    """A location query was empty or otherwise unusable."""
