"""Group lifecycle and bulk membership calls against the Groups API.

``GroupService`` wraps the individual endpoints.  ``temporary_group()`` is
the scoped create/patch/delete used by the runner, and ``add_members()``
drives the chunked, timed bulk add.

Every call treats anything other than HTTP 200 as a failure.
"""

import contextlib
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from .config import DEFAULT_CHUNK_BUDGET_MS, MAX_CHUNK_SIZE
from .errors import APIError, LatencyBudgetExceeded, MemberAdditionError
from .http_client import APIClient, APIResponse
from .models import ChunkResult, ChunkTiming, Group, Member
from .payloads import make_bulk_add, make_group, make_old_id_patch

logger = logging.getLogger(__name__)


def _expect_200(resp: APIResponse, what: str) -> None:
    if resp.status_code != 200:
        raise APIError(
            f"{what}: HTTP {resp.status_code} {resp.body}",
            status_code=resp.status_code,
            body=resp.body,
        )


def _json_object(resp: APIResponse, what: str) -> Dict[str, Any]:
    """Decode a 200 body that must be a JSON object, or raise ``APIError``."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        raise APIError(
            f"{what}: expected a JSON object, got {resp.body[:200]!r}",
            status_code=resp.status_code,
            body=resp.body,
        )
    return data


def _json_or_text(resp: APIResponse) -> Any:
    """Decoded JSON body, or the raw text when the body is not JSON."""
    try:
        return resp.json()
    except ValueError:
        return resp.body


def chunked(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Yield consecutive slices of ``items`` of at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


class GroupService:
    """Calls against one Groups API deployment.

    Args:
        client: ``APIClient`` bound to the Groups API URL, carrying the M2M token.
    """

    def __init__(self, client: APIClient):
        self.client = client

    def health_check(self) -> None:
        resp = self.client.get("/health")
        _expect_200(resp, "Health check failed")

    def create_group(self, payload: Optional[Dict[str, Any]] = None) -> Group:
        """Create a group (a fresh test group by default) and return it."""
        resp = self.client.post("/groups", payload or make_group())
        _expect_200(resp, "Failed to create test group")
        data = _json_object(resp, "Failed to create test group")
        if not data.get("id"):
            raise APIError(
                f"Failed to create test group: response has no id: {resp.body[:200]!r}",
                status_code=resp.status_code,
                body=resp.body,
            )
        return Group.from_dict(data)

    def patch_group(self, group_id: str, payload: Dict[str, Any]) -> Any:
        resp = self.client.patch(f"/groups/{group_id}", payload)
        _expect_200(resp, f"Failed to patch test group {group_id}")
        return _json_or_text(resp)

    def delete_group(self, group_id: str) -> Any:
        """Delete a group and return the deleted group's data (raw text if not JSON)."""
        resp = self.client.delete(f"/groups/{group_id}")
        _expect_200(resp, f"Failed to delete test group {group_id}")
        return _json_or_text(resp)

    @contextlib.contextmanager
    def temporary_group(
        self, on_delete: Optional[Callable[[Group, Optional[Exception]], None]] = None,
    ) -> Iterator[Group]:
        """Create a test group, set its ``oldId``, and delete it on exit.

        Deletion runs whether or not the body raised, including when the
        ``oldId`` patch itself fails.  If both the body and the delete fail,
        the delete error is logged and the body's error propagates.

        ``on_delete(group, error)`` is called after the delete attempt, with
        the delete error or None.
        """
        group = self.create_group()
        logger.info("Test group created: %s", group.id)
        body_failed = False
        try:
            patch = make_old_id_patch()
            self.patch_group(group.id, patch)
            group.old_id = patch["oldId"]
            yield group
        except BaseException:
            body_failed = True
            raise
        finally:
            logger.info("Cleaning up.")
            delete_error: Optional[Exception] = None
            try:
                self.delete_group(group.id)
                logger.info("Test group deleted: %s", group.id)
            except Exception as exc:
                delete_error = exc
                logger.error("Failed to delete test group %s: %s", group.id, exc)
            if on_delete is not None:
                on_delete(group, delete_error)
            if delete_error is not None and not body_failed:
                raise delete_error

    def add_members(self, group_id: str, members: Sequence[Member], **kwargs) -> List[ChunkResult]:
        return add_members(self.client, group_id, members, **kwargs)


def add_members(
    client: APIClient,
    group_id: str,
    members: Sequence[Member],
    chunk_size: int = MAX_CHUNK_SIZE,
    budget_ms: float = DEFAULT_CHUNK_BUDGET_MS,
    on_chunk: Optional[Callable[[ChunkTiming], None]] = None,
) -> List[ChunkResult]:
    """Bulk-add ``members`` to a group, one request per chunk.

    Checks, in order, for each chunk: HTTP 200, round-trip within
    ``budget_ms``, and no member with status ``failed``.  The first check
    that fails raises and no further chunks are sent.

    Args:
        client:     ``APIClient`` bound to the Groups API
        group_id:   Target group
        members:    Members to add
        chunk_size: Members per request, capped at 100
        budget_ms:  Maximum round-trip per chunk, in milliseconds
        on_chunk:   Called with a ``ChunkTiming`` after each successful chunk

    Returns:
        One ``ChunkResult`` per member, in response order.

    Raises:
        APIError: a chunk got a non-200 response, or a body without a
            ``members`` list.
        LatencyBudgetExceeded: a chunk took longer than ``budget_ms``.
        MemberAdditionError: a chunk reported failed members (only those are listed).
    """
    chunk_size = min(chunk_size, MAX_CHUNK_SIZE)
    results: List[ChunkResult] = []

    for index, chunk in enumerate(chunked(members, chunk_size)):
        start = index * chunk_size
        resp = client.post(f"/groups/{group_id}/members", make_bulk_add(chunk))
        elapsed_ms = resp.elapsed_ms

        what = f"Failed to add bulk member to group {group_id}"
        _expect_200(resp, what)
        if elapsed_ms > budget_ms:
            raise LatencyBudgetExceeded(elapsed_ms, budget_ms, chunk_index=index)

        chunk_results = _chunk_results(resp, what)
        failed = [r for r in chunk_results if r.failed]
        if failed:
            raise MemberAdditionError(failed)

        logger.info("Added member chunk %d to %d in %.0f ms", start, start + chunk_size, elapsed_ms)
        if on_chunk is not None:
            on_chunk(ChunkTiming(index, start, len(chunk), elapsed_ms))
        results.extend(chunk_results)

    return results


def _chunk_results(resp: APIResponse, what: str) -> List[ChunkResult]:
    entries = _json_object(resp, what).get("members", [])
    if not isinstance(entries, list) or not all(isinstance(m, dict) for m in entries):
        raise APIError(
            f"{what}: malformed members list in {resp.body[:200]!r}",
            status_code=resp.status_code,
            body=resp.body,
        )
    return [ChunkResult.from_dict(m) for m in entries]
