import httpx
import pytest
from sttgateway.retry import RetryPolicy
from sttgateway.signing import RequestSigner
from sttgateway.transport import RestTransport


class CountingSigner(RequestSigner):
    def __init__(self):
        self.count = 0

    async def sign(self, request: httpx.Request) -> None:
        self.count += 1
        request.headers["X-Signature"] = f"sig-{self.count}"


@pytest.mark.asyncio
async def test_request_is_signed_again_on_every_attempt(mock_http, instant_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        if len(client.requests) < 3:
            raise httpx.ConnectError("Connection refused")
        return httpx.Response(200, json={"ok": True})

    client = mock_http(handler)
    signer = CountingSigner()
    transport = RestTransport(client, signer, retry_policy=RetryPolicy(max_attempts=3), sleep=instant_sleep)

    resp = await transport.post("https://api.example.com/v1/recognize", json={"audio": "AAAA"})
    assert resp.json() == {"ok": True}
    assert signer.count == 3
    assert [r.headers["X-Signature"] for r in client.requests] == ["sig-1", "sig-2", "sig-3"]
    # Body is rebuilt for each attempt
    assert len({r.content for r in client.requests}) == 1


@pytest.mark.asyncio
async def test_error_status_raises_without_retry(mock_http, instant_sleep):
    client = mock_http(lambda request: httpx.Response(401, text="Unauthorized"))
    transport = RestTransport(client, sleep=instant_sleep)

    with pytest.raises(httpx.HTTPStatusError) as excinfo:
        await transport.get("https://api.example.com/v1/models")
    assert excinfo.value.response.status_code == 401
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_raise_for_status_can_be_disabled(mock_http, instant_sleep):
    client = mock_http(lambda request: httpx.Response(403, text="Forbidden"))
    transport = RestTransport(client, sleep=instant_sleep)

    resp = await transport.get("https://api.example.com/v1/models", raise_for_status=False)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_per_request_signer_overrides_default(mock_http, instant_sleep):
    client = mock_http(lambda request: httpx.Response(200))
    default_signer = CountingSigner()
    other_signer = CountingSigner()
    transport = RestTransport(client, default_signer, sleep=instant_sleep)

    await transport.get("https://api.example.com/v1/models", signer=other_signer)
    assert default_signer.count == 0
    assert other_signer.count == 1


@pytest.mark.asyncio
async def test_exhausted_retries_raise_last_error(mock_http, instant_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused")

    client = mock_http(handler)
    transport = RestTransport(client, retry_policy=RetryPolicy(max_attempts=2), sleep=instant_sleep)

    with pytest.raises(httpx.ConnectError):
        await transport.get("https://api.example.com/v1/models")
    assert len(client.requests) == 2
