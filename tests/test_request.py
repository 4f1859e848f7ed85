"""Tests for the RequestAPI builder in fluentrest."""

import io
import json
import re

import httpx
import pytest

from fluentrest.exceptions import ConfigurationError, RestError
from fluentrest.request import RequestAPI, RequestInit
from fluentrest.types import Blob, FormData

URL = "https://api.example.com/users"


@pytest.fixture
def request_api() -> RequestAPI:
    """Fixture for a standalone POST builder."""
    return RequestAPI("post", URL, {"X-Client": "tests"}, [])


def test_builder_defaults(request_api: RequestAPI):
    assert request_api.method == "POST"
    assert request_api.url == httpx.URL(URL)
    assert request_api.header("Accept") == "application/json"
    assert request_api.header("x-client") == "tests"
    assert request_api.content is None


def test_builder_copies_default_headers():
    defaults = httpx.Headers({"X-Client": "tests"})
    request_api = RequestAPI("GET", URL, defaults, [])
    request_api.header("X-Client", "changed")

    assert defaults["X-Client"] == "tests"
    assert "Accept" not in defaults


def test_header_overwrites_case_insensitively(request_api: RequestAPI):
    result = request_api.header("X-Trace", "1").header("x-trace", "2")

    assert result is request_api
    assert request_api.headers.get_list("X-Trace") == ["2"]


def test_header_accepts_mapping_and_pairs(request_api: RequestAPI):
    request_api.header({"X-One": "1", "X-Two": "2"}).header([("X-One", "uno")])

    assert request_api.header("X-One") == "uno"
    assert request_api.header("X-Two") == "2"
    assert request_api.header("X-Missing") is None


def test_query_overwrites_instead_of_appending(request_api: RequestAPI):
    request_api.query("page", "1").query("page", "2").query({"q": "a b", "limit": 10})

    assert request_api.url.params.get_list("page") == ["2"]
    assert request_api.url.params["q"] == "a b"
    assert request_api.url.params["limit"] == "10"
    assert str(request_api.url).startswith(URL + "?")


def test_credentials_rejects_unknown_mode(request_api: RequestAPI):
    assert request_api.credentials("include") is request_api
    assert request_api.init.credentials == "include"
    with pytest.raises(ConfigurationError, match="Invalid credentials mode"):
        request_api.credentials("sometimes")  # type: ignore[arg-type]


def test_body_json_sets_content_type(request_api: RequestAPI):
    result = request_api.body({"name": "Alice"})

    assert result is request_api
    assert request_api.content == '{"name":"Alice"}'
    assert request_api.header("Content-Type") == "application/json"


def test_body_json_keeps_caller_content_type(request_api: RequestAPI):
    request_api.header("Content-Type", "application/merge-patch+json")
    request_api.body({"name": "Alice"})

    assert request_api.header("Content-Type") == "application/merge-patch+json"


@pytest.mark.parametrize(
    "payload",
    ["plain text", b"raw bytes", Blob(content=b"x", type="text/plain"), None],
)
def test_body_passthrough_leaves_headers_alone(request_api: RequestAPI, payload):
    request_api.body(payload)

    assert request_api.content is payload
    assert request_api.header("Content-Type") is None


def test_body_serialization_error_leaves_state_untouched(request_api: RequestAPI):
    circular: list = []
    circular.append(circular)

    with pytest.raises(ValueError):
        request_api.body(circular)
    assert request_api.content is None
    assert request_api.header("Content-Type") is None


def test_body_blob_list_builds_multipart(request_api: RequestAPI):
    blobs = [
        Blob(content=b'{"title":"cover"}', type="application/json"),
        Blob(content=b"\x89PNG", type="image/png"),
    ]
    request_api.body(blobs)

    content_type = request_api.header("Content-Type")
    match = re.fullmatch(r"multipart/related; boundary=([A-Za-z0-9]{18})", content_type)
    assert match
    boundary = match.group(1)

    body = request_api.content
    assert isinstance(body, Blob)
    assert body.type == content_type.lower()
    delimiters = [
        line for line in body.content.split(b"\r\n") if line.startswith(b"--")
    ]
    assert delimiters == [
        f"--{boundary}".encode(),
        f"--{boundary}".encode(),
        f"--{boundary}--".encode(),
    ]
    assert body.content.endswith(f"--{boundary}--\r\n".encode())


def test_multipart_header_keeps_casing_on_the_wire(request_api: RequestAPI):
    request_api.header("Content-Type", "text/plain")
    request_api.body([Blob(content=b"a", type="Text/Plain")])
    request = request_api.build_request()

    content_type = request_api.header("Content-Type")
    boundary = content_type.split("boundary=")[1]
    assert request.headers["Content-Type"] == content_type
    assert request_api.content.type == content_type.lower()
    assert request.content.startswith(f"--{boundary}\r\nContent-Type: text/plain".encode())


def test_build_request_blob_contributes_content_type(request_api: RequestAPI):
    request_api.body(Blob(content=b"\x00\x01", type="Application/Octet-Stream"))
    request = request_api.build_request()

    assert request.content == b"\x00\x01"
    assert request.headers["Content-Type"] == "application/octet-stream"


def test_build_request_reads_files_and_iterators(request_api: RequestAPI):
    request_api.body(io.BytesIO(b"from a file"))
    assert request_api.build_request().content == b"from a file"

    request_api.body(iter([b"a", b"b", b"c"]))
    assert request_api.build_request().content == b"abc"


def test_build_request_encodes_form_data(request_api: RequestAPI):
    form = FormData({"title": "report"})
    form.append("attachment", Blob(content=b"PDF", type="application/pdf"), "report.pdf")
    request_api.body(form)
    request = request_api.build_request()
    request.read()

    assert request.headers["Content-Type"].startswith("multipart/form-data; boundary=")
    assert b'name="title"' in request.content
    assert b'filename="report.pdf"' in request.content
    assert b"PDF" in request.content


def test_build_request_standalone_sets_user_agent(request_api: RequestAPI):
    request = request_api.build_request()

    assert request.headers["User-Agent"].startswith("fluentrest/")


@pytest.mark.asyncio
async def test_send_returns_parsed_json(request_api: RequestAPI, httpx_mock):
    httpx_mock.add_response(url=URL, method="POST", status_code=201, json={"id": 7})

    result = await request_api.send({"name": "Alice"})

    assert result == {"id": 7}
    sent = httpx_mock.get_request()
    assert json.loads(sent.content) == {"name": "Alice"}
    assert sent.headers["Content-Type"] == "application/json"
    assert sent.headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_send_none_clears_body(request_api: RequestAPI, httpx_mock):
    httpx_mock.add_response(url=URL, method="POST", json={})
    request_api.body({"stale": True})

    await request_api.send(None)

    assert httpx_mock.get_request().content == b""


@pytest.mark.asyncio
async def test_send_empty_204_returns_none(request_api: RequestAPI, httpx_mock):
    httpx_mock.add_response(url=URL, method="POST", status_code=204)

    assert await request_api.send() is None


@pytest.mark.asyncio
async def test_send_non_json_success_returns_none(request_api: RequestAPI, httpx_mock):
    httpx_mock.add_response(url=URL, method="POST", text="created")

    assert await request_api.send() is None


@pytest.mark.asyncio
async def test_send_404_uses_error_field(request_api: RequestAPI, httpx_mock):
    httpx_mock.add_response(
        url=URL, method="POST", status_code=404, json={"error": "not found"}
    )

    with pytest.raises(RestError) as exc_info:
        await request_api.send()

    assert exc_info.value.code == 404
    assert exc_info.value.message == "not found"
    assert exc_info.value.response.status_code == 404


@pytest.mark.asyncio
async def test_send_500_plain_text_message(request_api: RequestAPI, httpx_mock):
    httpx_mock.add_response(url=URL, method="POST", status_code=500, text="oops")

    with pytest.raises(RestError) as exc_info:
        await request_api.send()

    assert exc_info.value.code == 500
    assert exc_info.value.message == "oops"


@pytest.mark.asyncio
async def test_send_error_without_message(request_api: RequestAPI, httpx_mock):
    httpx_mock.add_response(
        url=URL, method="POST", status_code=422, json={"detail": "bad"}
    )

    with pytest.raises(RestError, match="Unknown error"):
        await request_api.send()


@pytest.mark.asyncio
async def test_send_transport_error_propagates(request_api: RequestAPI, httpx_mock):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))

    with pytest.raises(httpx.ConnectError, match="connection refused"):
        await request_api.send()


@pytest.mark.asyncio
async def test_send_twice_reruns_hooks(httpx_mock):
    httpx_mock.add_response(url=URL, json={"ok": True}, is_reusable=True)
    calls = []
    request_api = RequestAPI("GET", URL, None, [calls.append])

    assert await request_api.send() == {"ok": True}
    assert await request_api.send() == {"ok": True}

    assert calls == [request_api, request_api]
    assert len(httpx_mock.get_requests()) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [io.BytesIO(b"abc"), iter([b"a", b"b", b"c"])],
    ids=["file", "iterator"],
)
async def test_send_twice_resends_consumed_body(
    request_api: RequestAPI, httpx_mock, payload
):
    httpx_mock.add_response(url=URL, method="POST", json={}, is_reusable=True)
    request_api.body(payload)

    await request_api.send()
    await request_api.send()

    assert [sent.content for sent in httpx_mock.get_requests()] == [b"abc", b"abc"]
    assert request_api.content == b"abc"


def test_header_getter_and_setter_return_types(request_api: RequestAPI):
    assert request_api.header("X-Missing") is None
    assert request_api.header("X-Trace", "1") is request_api
    assert request_api.header({"X-Trace": "2"}) is request_api
    assert request_api.header("X-Trace") == "2"


@pytest.mark.asyncio
async def test_hook_errors_propagate_and_skip_dispatch(log_capture):
    def failing_hook(request):
        raise RuntimeError("hook exploded")

    request_api = RequestAPI("GET", URL, None, [failing_hook])

    with pytest.raises(RuntimeError, match="hook exploded"):
        await request_api.send()
    assert "Error executing hook failing_hook: hook exploded" in log_capture.getvalue()


def test_request_init_ignores_unknown_fields():
    init = RequestInit(method="GET", timeout=5)

    assert not hasattr(init, "timeout")
    assert init.model_dump(exclude={"headers"}) == {
        "method": "GET",
        "content": None,
        "credentials": None,
    }
