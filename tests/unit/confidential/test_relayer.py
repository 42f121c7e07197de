import json

import httpx
import pytest

from gitsafe.base.config import ConfidentialConfig
from gitsafe.confidential.relayer import RelayerConfidentialService
from gitsafe.errors import ConfidentialServiceError, ErrorCode


def _service(handler):
    config = ConfidentialConfig(relayer_url="http://relayer.test")
    client = httpx.AsyncClient(base_url=config.relayer_url, transport=httpx.MockTransport(handler))
    return RelayerConfidentialService(config, client=client)


def _default_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/v1/keyurl":
        return httpx.Response(200, json={"publicKeyId": "pk-1", "crsId": "crs-1"})
    if request.url.path == "/v1/encrypt":
        body = json.loads(request.content)
        assert body["values"] == [{"type": "euint32", "value": 1024}]
        return httpx.Response(200, json={"handles": ["0xAbC1"], "inputProof": "0xproof"})
    if request.url.path == "/v1/public-decrypt":
        body = json.loads(request.content)
        return httpx.Response(200, json={
            "clearValues": {h: 1024 for h in body["handles"]},
            "abiEncodedClearValues": "0x0400",
            "decryptionProof": "0xdproof",
        })
    return httpx.Response(404, json={"message": "not found"})


@pytest.mark.asyncio
async def test_initialize_is_idempotent():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return _default_handler(request)

    service = _service(handler)
    assert service.is_initialized is False

    await service.initialize()
    await service.initialize()

    assert service.is_initialized is True
    assert calls == ["/v1/keyurl"]
    await service.client.aclose()


@pytest.mark.asyncio
async def test_encrypt_returns_handle_and_proof():
    service = _service(_default_handler)
    await service.initialize()

    encrypted = await service.encrypt("0xC0", "0xA1", 1024)

    assert encrypted.ciphertext == "0xAbC1"
    assert encrypted.proof == "0xproof"
    await service.client.aclose()


@pytest.mark.asyncio
async def test_encrypt_before_initialize_fails():
    service = _service(_default_handler)

    with pytest.raises(ConfidentialServiceError) as exc:
        await service.encrypt("0xC0", "0xA1", 1)

    assert exc.value.code == ErrorCode.CONFIDENTIAL_NOT_INITIALIZED
    await service.client.aclose()


@pytest.mark.asyncio
async def test_verify_decryption_invokes_callback_with_bundle():
    service = _service(_default_handler)
    await service.initialize()
    received = []

    async def on_proof_ready(bundle, proof):
        received.append((bundle, proof))
        return "receipt"

    result = await service.verify_decryption(["0xabc1"], "0xC0", on_proof_ready)

    assert received == [("0x0400", "0xdproof")]
    assert result.callback_result == "receipt"
    assert result.decryption_result.value_for("0xABC1") == 1024
    await service.client.aclose()


@pytest.mark.asyncio
async def test_callback_failure_propagates():
    service = _service(_default_handler)
    await service.initialize()

    async def on_proof_ready(bundle, proof):
        raise RuntimeError("Data already verified")

    with pytest.raises(RuntimeError, match="already verified"):
        await service.verify_decryption(["0x1"], "0xC0", on_proof_ready)
    await service.client.aclose()


@pytest.mark.asyncio
async def test_relayer_error_message_surfaces():
    def handler(request):
        if request.url.path == "/v1/keyurl":
            return httpx.Response(503, json={"message": "relayer overloaded"})
        return _default_handler(request)

    service = _service(handler)

    with pytest.raises(ConfidentialServiceError) as exc:
        await service.initialize()

    assert exc.value.message == "relayer overloaded"
    assert exc.value.details["status"] == 503
    assert service.is_initialized is False
    await service.client.aclose()


@pytest.mark.asyncio
async def test_transport_error_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = _service(handler)

    with pytest.raises(ConfidentialServiceError, match="connection refused"):
        await service.initialize()
    await service.client.aclose()
