"""Domain errors raised by the recommendation core"""


class RecommendationError(Exception):
    """Base class for recommendation service errors"""


class DataIntegrityError(RecommendationError):
    """
    A feature vector is malformed

    Raised for dimension mismatches, non-finite components or negative
    attribute weights. Never retried; surfaced to the caller.
    """


class UpstreamFetchFailure(RecommendationError):
    """
    The interaction store or game catalog could not be read

    Generation for the affected user is retried with backoff by the batch
    job; request handlers report it as a temporary failure.
    """

    def __init__(self, source: str, detail: str = ""):
        self.source = source
        self.detail = detail
        message = f"Failed to fetch from {source}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
