"""Per-request identity passed by value into the pipelines."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RequestContext:
    """
    The verified caller of one request.

    Built by the auth dependency after the identity provider has verified
    the bearer token. owner_id scopes every store and index operation.
    """

    owner_id: str
    email: Optional[str] = None
    request_id: Optional[str] = None
