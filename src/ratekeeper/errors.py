"""Exceptions raised by ratekeeper."""


class RateKeeperError(Exception):
    """Base class for ratekeeper errors."""

    pass


class RemoteFetchError(RateKeeperError):
    """Error fetching a rate from the remote source."""

    def __init__(self, message: str, key: str | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.key = key
        self.cause = cause


class NoDataAvailableError(RemoteFetchError):
    """The remote fetch failed and no cached rate exists for the pair."""

    pass
