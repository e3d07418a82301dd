"""Tests for the /metrics handler in server mode."""

import pytest
from arris.server import build_app, split_http_addr
from arris.session import ModemSession
from conftest import USERNAME


async def test_metrics_endpoint(aiohttp_client, modem, session):
    client = await aiohttp_client(build_app(session))

    resp = await client.get("/metrics")
    body = await resp.text()

    assert resp.status == 200
    assert resp.headers["Content-Type"].startswith("text/plain")
    assert body.startswith('downstream_bonded_channels_frequency_hz{channel_id="1"} 543000000\n')
    assert 'upstream_bonded_channels_power_dbmv{channel_id="4"} 45.5\n' in body
    # meta metrics come after the channel lines
    assert body.index("meta_request_duration_seconds") > body.index("upstream_bonded_channels_")


async def test_metrics_endpoint_rescrapes_each_request(aiohttp_client, modem, session):
    client = await aiohttp_client(build_app(session))

    await client.get("/metrics")
    await client.get("/metrics")

    assert modem.status_hits == 2
    assert modem.login_hits == 1


async def test_failed_scrape_still_answers(aiohttp_client, modem, captured_logs):
    session = ModemSession(
        addr=f"{modem.server.host}:{modem.server.port}",
        username=USERNAME,
        password="wrong",
        scheme="http",
    )
    client = await aiohttp_client(build_app(session))

    resp = await client.get("/metrics")
    body = await resp.text()

    assert resp.status == 200
    assert "bonded_channels" not in body
    assert "meta_scrape_result" in body
    assert any(e["event"] == "Failed to scrape modem" and e["log_level"] == "error" for e in captured_logs)


async def test_partial_body_on_failure(aiohttp_client, modem, session, status_html):
    modem.status_html = status_html.replace("Upstream Bonded Channels", "Upstream OFDMA Channels")
    client = await aiohttp_client(build_app(session))

    resp = await client.get("/metrics")
    body = await resp.text()

    assert resp.status == 200
    assert "downstream_bonded_channels_frequency_hz" in body
    assert "upstream_bonded_channels" not in body


@pytest.mark.parametrize(
    "http_addr, expected",
    [
        ("0.0.0.0:1234", ("0.0.0.0", 1234)),
        (":9100", (None, 9100)),
        ("localhost:8200", ("localhost", 8200)),
        ("[::1]:8080", ("::1", 8080)),
    ],
)
def test_split_http_addr(http_addr, expected):
    assert split_http_addr(http_addr) == expected


@pytest.mark.parametrize("http_addr", ["9100", "host:", "host:abc"])
def test_split_http_addr_invalid(http_addr):
    with pytest.raises(ValueError):
        split_http_addr(http_addr)
