"""Tests for ltgrid.api against an in-process fake of the LambdaTest API."""
import aiohttp
import pytest

from ltgrid.api import LambdaTestAPI, flatten_platforms, job_status
from ltgrid.base import JobResult
from ltgrid.errors import LambdaTestAPIError


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def test_job_status_done_all_passed():
    assert job_status(JobResult.DONE, {"total": 4, "passed": 4}) == "passed"


def test_job_status_done_with_failures():
    assert job_status(JobResult.DONE, {"total": 4, "passed": 3}) == "failed"


@pytest.mark.parametrize("result", [JobResult.ERRORED, JobResult.ABORTED, "aborted"])
def test_job_status_not_done_is_failed(result):
    assert job_status(result, {"total": 1, "passed": 1}) == "failed"


def test_job_status_missing_counts_passes():
    assert job_status("done", None) == "passed"


def test_job_status_unknown_result_rejected():
    with pytest.raises(ValueError):
        job_status("exploded", {})


def test_flatten_platforms_skips_duplicates():
    payload = {
        "platforms": {
            "Desktop": [
                {"platform": "Windows 11", "browsers": [
                    {"browser_name": "chrome", "version": "120.0"},
                    {"browser_name": "chrome", "version": "120.0"},
                    {"browser_name": "edge"},
                ]},
            ],
        }
    }
    assert flatten_platforms(payload) == [
        "chrome@120.0:Windows 11",
        "edge@latest:Windows 11",
    ]


def test_flatten_platforms_empty_payload():
    assert flatten_platforms({}) == []


# ---------------------------------------------------------------------------
# HTTP round trips
# ---------------------------------------------------------------------------

async def test_get_browser_list(fake_api, lt_config):
    async with LambdaTestAPI(lt_config) as api:
        names = await api.get_browser_list()
    assert names == [
        "chrome@120.0:Windows 11",
        "firefox@121.0:Windows 11",
        "safari@17.0:macOS Sonoma",
        "Galaxy S23@13:android",
    ]
    request = fake_api.requests[0]
    assert request["method"] == "GET"
    assert request["auth"].login == "alice"
    assert request["auth"].password == "s3cr3t"


async def test_update_job_status_sends_status_ind(fake_api, lt_config):
    async with LambdaTestAPI(lt_config) as api:
        resp = await api.update_job_status(
            "abc", JobResult.DONE, {"total": 2, "passed": 1}
        )
    assert resp["status"] == "success"
    request = fake_api.requests[0]
    assert request["method"] == "PATCH"
    assert request["path"] == "/sessions/abc"
    assert request["body"] == {"status_ind": "failed"}


async def test_update_job_status_real_mobile_uses_mobile_api(fake_api, lt_config):
    async with LambdaTestAPI(lt_config) as api:
        await api.update_job_status("m1", "done", {"total": 1, "passed": 1}, is_real_mobile=True)
        await api.update_job_status("d1", "done", {"total": 1, "passed": 1})
    assert [r["path"] for r in fake_api.requests] == ["/mobile/sessions/m1", "/sessions/d1"]
    assert fake_api.requests[0]["body"] == {"status_ind": "passed"}


async def test_error_status_raises(fake_api, lt_config):
    fake_api.status_code = 401
    async with LambdaTestAPI(lt_config) as api:
        with pytest.raises(LambdaTestAPIError) as excinfo:
            await api.get_browser_list()
    assert excinfo.value.status == 401
    assert "Unauthorized" in str(excinfo.value)


async def test_unreachable_api_raises_api_error(lt_config, unused_tcp_port):
    lt_config.api_url = f"http://127.0.0.1:{unused_tcp_port}"
    async with LambdaTestAPI(lt_config) as api:
        with pytest.raises(LambdaTestAPIError) as excinfo:
            await api.get_browser_list()
    assert excinfo.value.status == 0
    assert isinstance(excinfo.value.__cause__, aiohttp.ClientError)


async def test_close_is_idempotent(lt_config):
    api = LambdaTestAPI(lt_config)
    await api.close()
    await api.close()
