"""Unit tests for the remote client."""

import asyncio

import aiohttp
import pytest
from aioresponses import aioresponses
from helpers import LICENSE_API, VERSIONS_PATTERN, license_pattern, request_calls

from addon_updates.errors import ApplicationError, InvalidResponse, TransportError
from addon_updates.remote import RemoteClient, process_api_response


class TestProcessApiResponse:
    """Test decoding of raw response bodies."""

    def test_returns_payload(self):
        assert process_api_response(200, '{"license": {"key": "x"}}') == {
            "license": {"key": "x"}
        }

    def test_error_envelope(self):
        with pytest.raises(ApplicationError) as exc_info:
            process_api_response(
                404,
                '{"code": "hizzle_licenses_not_found", "message": "Not found", '
                '"data": {"status": 404}}',
            )

        assert exc_info.value.code == "hizzle_licenses_not_found"
        assert exc_info.value.message == "Not found"
        assert exc_info.value.data == {"status": 404}
        assert exc_info.value.is_license_not_found is True

    @pytest.mark.parametrize("body", ["", "null", "[]", "<html>oops</html>"])
    def test_empty_or_invalid_body(self, body):
        with pytest.raises(InvalidResponse):
            process_api_response(200, body)

    def test_empty_object_is_a_valid_payload(self):
        assert process_api_response(200, "{}") == {}

    def test_http_error_without_envelope(self):
        with pytest.raises(ApplicationError) as exc_info:
            process_api_response(500, "<html>Server error</html>")

        assert exc_info.value.code == "http_500"


@pytest.mark.asyncio
async def test_fetch_license_sends_website_and_headers(remote: RemoteClient):
    with aioresponses() as mock:
        mock.get(
            license_pattern("KEY-1"),
            payload={"license": {"is_active_on_site": True}},
        )

        payload = await remote.fetch_license("KEY-1")

        assert payload == {"license": {"is_active_on_site": True}}
        call = request_calls(mock)[0]
        assert call.kwargs["params"] == {"website": "https://shop.example.com"}
        assert call.kwargs["headers"]["Accept"] == "application/json"
        assert call.kwargs["headers"]["X-Requested-With"] == "AddonUpdates"


@pytest.mark.asyncio
async def test_activate_posts_website_and_downloads(remote: RemoteClient):
    with aioresponses() as mock:
        mock.post(f"{LICENSE_API}/KEY-1/activate", payload={"is_membership": True})

        payload = await remote.activate_license("KEY-1", ["acme-forms", "acme-pay"])

        assert payload == {"is_membership": True}
        call = request_calls(mock)[0]
        assert call.kwargs["data"] == {
            "website": "https://shop.example.com",
            "downloads": "acme-forms,acme-pay",
        }


@pytest.mark.asyncio
async def test_deactivate_error_envelope(remote: RemoteClient):
    with aioresponses() as mock:
        mock.post(
            f"{LICENSE_API}/KEY-1/deactivate",
            status=400,
            payload={"code": "not_active", "message": "Not active", "data": None},
        )

        with pytest.raises(ApplicationError) as exc_info:
            await remote.deactivate_license("KEY-1")

        assert exc_info.value.code == "not_active"
        assert exc_info.value.data == {}


@pytest.mark.asyncio
async def test_versions_params_without_license(remote: RemoteClient):
    params = remote.versions_params(["a", "b"], None, "hash123")

    assert params == {"downloads": "a,b", "hash": "hash123"}


@pytest.mark.asyncio
async def test_versions_params_with_license(remote: RemoteClient):
    params = remote.versions_params(["a"], "KEY-1")

    assert params == {
        "hizzle_license": "KEY-1",
        "hizzle_license_url": "https://shop.example.com",
        "downloads": "a",
    }


@pytest.mark.asyncio
async def test_fetch_versions_connection_error(remote: RemoteClient):
    with aioresponses() as mock:
        mock.get(VERSIONS_PATTERN, exception=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(TransportError):
            await remote.fetch_versions(["a"], None)


@pytest.mark.asyncio
async def test_fetch_versions_timeout(remote: RemoteClient):
    with aioresponses() as mock:
        mock.get(VERSIONS_PATTERN, exception=asyncio.TimeoutError())

        with pytest.raises(TransportError, match="timed out"):
            await remote.fetch_versions(["a"], None)


@pytest.mark.asyncio
async def test_fetch_versions_rejects_non_object(remote: RemoteClient):
    with aioresponses() as mock:
        mock.get(VERSIONS_PATTERN, payload=["a", "b"])

        with pytest.raises(InvalidResponse):
            await remote.fetch_versions(["a"], None)


@pytest.mark.asyncio
async def test_close_is_idempotent(remote: RemoteClient):
    await remote._get_session()
    await remote.close()
    await remote.close()

    assert remote._session is None
