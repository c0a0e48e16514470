"""HTTP transport abstraction used by the client."""

from abc import ABC, abstractmethod
from typing import Optional

import requests


class Transport(ABC):
    """Sends one prepared request and returns one response.

    Implementations raise ``requests.RequestException`` (or a subclass) when
    no response could be obtained.
    """

    @abstractmethod
    def send(self, request: requests.PreparedRequest,
             timeout: Optional[float] = None) -> requests.Response:
        """Send ``request`` and return the response."""

    def close(self) -> None:
        """Release any pooled connections."""


class RequestsTransport(Transport):
    """Transport backed by a ``requests.Session`` owned by the client."""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def send(self, request: requests.PreparedRequest,
             timeout: Optional[float] = None) -> requests.Response:
        return self.session.send(request, timeout=timeout)

    def close(self) -> None:
        self.session.close()
