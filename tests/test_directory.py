"""Tests for the Members API directory reader.

The mock directory serves ``directory_size`` records with ``userId``
40000000, 40000001, ... so page alignment can be checked exactly.
"""

import pytest

from groups_perf.directory import DirectoryReader
from groups_perf.errors import APIError, DirectoryExhaustedError
from groups_perf.http_client import APIClient, APIResponse
from tests.mock_groups_server import MockGroupsServer


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def server():
    with MockGroupsServer(behaviours={"directory_size": 1000}) as s:
        yield s


def _reader(server, **kwargs):
    kwargs.setdefault("sleep", SleepRecorder())
    return DirectoryReader(APIClient(server.members_url, token="t"), **kwargs)


def _ids(members):
    return [int(m.member_id) for m in members]


def test_get_members_single_page(server):
    records = _reader(server).get_members(1, 5)
    assert records == [{"userId": 40000000 + i} for i in range(5)]
    _, _, query, _ = server.requests_to("GET", "/members")[0]
    assert query["fields"] == "userId"


def test_exact_count_across_page_boundaries(server):
    members = _reader(server).get_n_members(250)
    assert len(members) == 250
    # Contiguous ids prove no page was skipped or read twice
    assert _ids(members) == list(range(40000000, 40000250))
    assert all(m.membership_type == "user" for m in members)
    pages = server.requests_to("GET", "/members")
    assert [q["page"] for _, _, q, _ in pages] == ["1", "2", "3"]
    assert {q["perPage"] for _, _, q, _ in pages} == {"100"}


def test_count_below_page_size_uses_one_request(server):
    members = _reader(server).get_n_members(42)
    assert _ids(members) == list(range(40000000, 40000042))
    pages = server.requests_to("GET", "/members")
    assert len(pages) == 1
    assert pages[0][2]["perPage"] == "42"


def test_exact_multiple_of_page_size(server):
    members = _reader(server).get_n_members(200)
    assert len(members) == 200
    assert len(server.requests_to("GET", "/members")) == 2


def test_page_size_is_capped_at_100(server):
    reader = _reader(server, page_size=500)
    assert reader.page_size == 100
    reader.get_n_members(150)
    assert {q["perPage"] for _, _, q, _ in server.requests_to("GET", "/members")} == {"100"}


def test_smaller_page_size(server):
    members = _reader(server, page_size=30).get_n_members(70)
    assert _ids(members) == list(range(40000000, 40000070))
    assert len(server.requests_to("GET", "/members")) == 3


def test_delay_between_pages(server):
    sleep = SleepRecorder()
    _reader(server, page_delay=0.1, sleep=sleep).get_n_members(250)
    assert sleep.calls == [0.1, 0.1]


def test_zero_members_makes_no_request(server):
    assert _reader(server).get_n_members(0) == []
    assert server.requests_to("GET", "/members") == []


def test_exhausted_directory_raises():
    with MockGroupsServer(behaviours={"directory_size": 120}) as server:
        with pytest.raises(DirectoryExhaustedError) as excinfo:
            _reader(server).get_n_members(300)
    assert excinfo.value.requested == 300
    assert excinfo.value.received == 120


def test_http_error_propagates():
    with MockGroupsServer(behaviours={"directory_status": 503}) as server:
        with pytest.raises(APIError) as excinfo:
            _reader(server).get_n_members(10)
    assert excinfo.value.status_code == 503


class HtmlClient:
    def get(self, path, params=None):
        return APIResponse(200, {"Content-Type": "text/html"}, "<html>maintenance</html>")


def test_non_json_page_raises_api_error():
    reader = DirectoryReader(HtmlClient(), sleep=SleepRecorder())
    with pytest.raises(APIError, match="not a JSON array") as excinfo:
        reader.get_n_members(10)
    assert excinfo.value.status_code == 200
    assert excinfo.value.body == "<html>maintenance</html>"
