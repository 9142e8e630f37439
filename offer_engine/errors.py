"""Exceptions raised around the offer engine.

The resolver itself never raises; these belong to the store, the
authoring checks and the HTTP/CLI surfaces.
"""


class OfferEngineError(Exception):
    """Base exception for offer_engine errors."""

    pass


class OfferNotFoundError(OfferEngineError):
    """Raised when an offer id doesn't exist in the store."""

    def __init__(self, offer_id: str):
        self.offer_id = offer_id
        super().__init__(f"Offer not found: {offer_id}")


class InvalidOfferError(OfferEngineError):
    """Raised when an offer payload is missing required fields or malformed."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Invalid offer: " + "; ".join(problems))
