import pytest
from unittest.mock import AsyncMock

from gitsafe.base.session import AccountSession
from gitsafe.client import GitSafeClient
from gitsafe.errors import InitializationFailure, LedgerError, SyncError
from gitsafe.ledger.rpc import JsonRpcLedgerGateway
from gitsafe.confidential.relayer import RelayerConfidentialService
from gitsafe.status.notifier import StatusPhase


@pytest.fixture
def client(ledger, confidential, notifier, test_config):
    return GitSafeClient(ledger, confidential, config=test_config, notifier=notifier, session=AccountSession())


@pytest.mark.asyncio
async def test_connect_initializes_then_loads(client, ledger, confidential):
    ledger.seed("repo-1")

    records = await client.connect("0xA")

    assert confidential.init_calls == 1
    assert [r.identifier for r in records] == ["repo-1"]
    assert client.records == records


@pytest.mark.asyncio
async def test_connect_surfaces_initialization_failure(client, confidential, notifier):
    confidential.init_error = RuntimeError("wasm load failed")

    with pytest.raises(InitializationFailure):
        await client.connect("0xA")

    assert notifier.current.phase is StatusPhase.ERROR
    notifier.clear()


@pytest.mark.asyncio
async def test_records_load_when_initialization_fails(client, ledger, confidential, notifier):
    ledger.seed("repo-1")
    confidential.init_error = RuntimeError("wasm load failed")

    with pytest.raises(InitializationFailure):
        await client.connect("0xA")

    assert [r.identifier for r in client.records] == ["repo-1"]
    assert "list_record_identifiers" in ledger.calls
    assert notifier.current.message == "Confidential subsystem initialization failed"
    notifier.clear()


@pytest.mark.asyncio
async def test_initialization_failure_wins_over_load_failure(client, ledger, confidential, notifier):
    ledger.list_error = LedgerError("timeout")
    confidential.init_error = RuntimeError("wasm load failed")

    with pytest.raises(InitializationFailure):
        await client.connect("0xA")

    assert client.records == ()
    notifier.clear()


@pytest.mark.asyncio
async def test_account_switch_reinitializes(client, confidential):
    await client.connect("0xA")
    confidential.is_initialized = False

    await client.connect("0xB")

    assert confidential.init_calls == 2


@pytest.mark.asyncio
async def test_refresh_failure_reported(client, ledger, notifier):
    ledger.list_error = LedgerError("timeout")

    with pytest.raises(SyncError):
        await client.refresh()

    assert notifier.current.message == "Failed to load data"
    notifier.clear()


@pytest.mark.asyncio
async def test_submit_and_reveal_through_client(client, notifier):
    await client.connect("0xA")
    client.submission.id_factory = lambda: "repo-77"

    identifier = await client.submit_form("lib-a", "1024", "12", "x")
    value = await client.reveal_size(identifier)

    assert value == 1024
    assert client.stats().verified_records == 1
    notifier.clear()


@pytest.mark.asyncio
async def test_check_availability(client, ledger, notifier):
    assert await client.check_availability() is True
    assert notifier.current.message == "FHE system is available!"

    ledger.available = False
    notifier.clear()
    assert await client.check_availability() is False
    assert notifier.current.visible is False

    ledger.probe_availability = AsyncMock(side_effect=LedgerError("down"))
    assert await client.check_availability() is False


@pytest.mark.asyncio
async def test_page_filters_and_paginates(client, ledger):
    for i in range(7):
        ledger.seed(f"repo-{i}", name=f"lib-{i}" if i % 2 else f"tool-{i}")
    await client.connect("0xA")

    page = client.page(1, search="lib")
    assert page.total_items == 3
    assert page.total_pages == 1

    page = client.page(2)
    assert [r.identifier for r in page.records] == ["repo-5", "repo-6"]


def test_from_config_builds_http_adapters(test_config):
    client = GitSafeClient.from_config(test_config)
    assert isinstance(client.context.gateway, JsonRpcLedgerGateway)
    assert isinstance(client.context.confidential, RelayerConfidentialService)
    assert client.context.contract_address == test_config.ledger.contract_address
