from abc import ABC, abstractmethod
import httpx


class RequestSigner(ABC):
    """Attaches authentication to an outgoing HTTP request in place."""

    @abstractmethod
    async def sign(self, request: httpx.Request) -> None:
        pass

    async def close(self):
        pass


class NoopSigner(RequestSigner):
    async def sign(self, request: httpx.Request) -> None:
        pass
