"""Orchestrates one perf run against a Groups API deployment.

``run_perf_test()`` acquires an M2M token, loads the members to add,
health-checks the target, creates a temporary test group, bulk-adds the
members in timed chunks, deletes the group, and returns an exit code
(0 = every step passed, 1 = anything failed).

Safety mechanisms:
- Requires ``accept_side_effects=True`` before executing (CLI flag: ``--i-accept-side-effects``)
- Test groups are named with the ``TestGroup-`` prefix
- The test group is deleted on every exit path once it has been created
"""

import contextlib
import datetime
import logging
import time
from typing import Callable, Iterator, List, Optional

import requests

from . import __version__
from .auth import M2MTokenProvider
from .config import PerfConfig
from .directory import DirectoryReader
from .errors import PerfTestError
from .groups import GroupService
from .http_client import APIClient
from .models import ChunkTiming, Group, Member
from .payloads import TEST_GROUP_PREFIX, synthetic_members
from .report import StepResult, print_results

logger = logging.getLogger(__name__)

PHASE_SETUP = "Setup"
PHASE_RUN = "Bulk Membership"
PHASE_CLEANUP = "Cleanup"


class _Recorder:
    """Collects step results; cleanup results are kept apart and reported last."""

    def __init__(self):
        self.results: List[StepResult] = []
        self.cleanup: List[StepResult] = []
        self.timings: List[ChunkTiming] = []

    @contextlib.contextmanager
    def step(self, name: str, phase: str) -> Iterator[StepResult]:
        """Record the wrapped block as PASS, or FAIL/ERROR when it raises.

        ``PerfTestError`` is a FAIL, a transport error is an ERROR.  The
        exception is re-raised either way.
        """
        result = StepResult(name, StepResult.PASS, phase=phase)
        try:
            yield result
        except PerfTestError as exc:
            result.status = StepResult.FAIL
            result.message = str(exc)
            raise
        except requests.RequestException as exc:
            result.status = StepResult.ERROR
            result.message = str(exc)
            raise
        except Exception as exc:
            result.status = StepResult.ERROR
            result.message = f"{type(exc).__name__}: {exc}"
            raise
        finally:
            self.results.append(result)

    def record_delete(self, group: Group, error: Optional[Exception]) -> None:
        name = f"DELETE /groups/{group.id}"
        if error is None:
            self.cleanup.append(StepResult(name, StepResult.PASS, phase=PHASE_CLEANUP))
        else:
            status = StepResult.FAIL if isinstance(error, PerfTestError) else StepResult.ERROR
            self.cleanup.append(StepResult(name, status, message=str(error), phase=PHASE_CLEANUP))

    def all_results(self) -> List[StepResult]:
        return self.results + self.cleanup


def run_perf_test(
    config: PerfConfig,
    json_output: bool = False,
    accept_side_effects: bool = False,
    token_provider: Optional[M2MTokenProvider] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Run the perf test and return an exit code.

    Returns:
        0 if every step passed, 1 if any step failed or errored.

    Args:
        config:               Run configuration; credentials are checked here.
        json_output:          If True, print the report as JSON.
        accept_side_effects:  Must be True to proceed; the run creates and
                              deletes a real group on the target.
        token_provider:       Token source; defaults to an Auth0 client built from ``config``.
        sleep:                Sleep used between Members API pages.
    """
    if not accept_side_effects:
        _print_side_effect_warning(config.groups_api_url, json_output)
        return 1

    recorder = _Recorder()
    aborted = False
    run_timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    try:
        with recorder.step("Validate configuration", PHASE_SETUP):
            config.require_credentials()
        logger.info("Groups API URL: %s", config.groups_api_url)

        with recorder.step("Acquire M2M token", PHASE_SETUP):
            provider = token_provider or M2MTokenProvider(
                config.auth0_url,
                config.auth0_audience,
                config.auth0_client_id,
                config.auth0_client_secret,
                proxy_server_url=config.auth0_proxy_server_url,
                cache_time=config.token_cache_time,
                timeout=config.timeout,
            )
            token = provider.get_token()

        with recorder.step(f"Load {config.initial_member_size} members", PHASE_SETUP) as step:
            members = _load_members(config, token, sleep)
            step.message = f"{len(members)} {config.member_source} members"

        with APIClient(config.groups_api_url, token=token, timeout=config.timeout) as client:
            groups = GroupService(client)

            with recorder.step("GET /health", PHASE_SETUP):
                groups.health_check()

            _add_members_to_test_group(groups, members, config, recorder)

    except (PerfTestError, requests.RequestException) as exc:
        logger.error("Perf test aborted: %s", exc)
        aborted = True
    except Exception:
        logger.exception("Perf test aborted by an unexpected error")
        aborted = True
    else:
        logger.info("Perf test finished.")

    results = recorder.all_results()
    print_results(
        results,
        recorder.timings,
        json_output=json_output,
        version=__version__,
        timestamp=run_timestamp,
        target=config.groups_api_url,
    )

    has_failures = any(r.status in (StepResult.FAIL, StepResult.ERROR) for r in results)
    return 1 if aborted or has_failures else 0


def _load_members(config: PerfConfig, token: str, sleep: Callable[[float], None]) -> List[Member]:
    """Build the member list from the configured source."""
    n = config.initial_member_size
    if config.member_source == "directory":
        with APIClient(config.members_api_url, token=token, timeout=config.timeout) as client:
            reader = DirectoryReader(
                client,
                page_size=config.page_size,
                page_delay=config.page_delay,
                sleep=sleep,
            )
            return reader.get_n_members(n)
    logger.info("Generating %d synthetic members", n)
    return synthetic_members(n)


def _add_members_to_test_group(
    groups: GroupService,
    members: List[Member],
    config: PerfConfig,
    recorder: _Recorder,
) -> None:
    """Create the test group, add every member, and always delete the group."""
    with contextlib.ExitStack() as stack:
        with recorder.step("Create test group and set oldId", PHASE_RUN) as step:
            group = stack.enter_context(groups.temporary_group(on_delete=recorder.record_delete))
            step.message = f"{group.name} ({group.id})"

        logger.info("Adding %d members to test group %s", len(members), group.id)
        with recorder.step(f"Add {len(members)} members", PHASE_RUN) as step:
            started = time.perf_counter()
            added = groups.add_members(
                group.id,
                members,
                chunk_size=config.chunk_size,
                budget_ms=config.chunk_budget_ms,
                on_chunk=recorder.timings.append,
            )
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info("Time: %.0f ms", elapsed_ms)
            step.message = f"{len(added)} members in {len(recorder.timings)} chunks, {elapsed_ms:.0f} ms"


def _print_side_effect_warning(base_url: str, json_output: bool):
    """Warn the user that the run will create and delete a group, and exit."""
    if json_output:
        import json
        print(json.dumps({
            "error": "Side-effect consent required",
            "message": (
                f"The perf test will create a test group on {base_url}, add members "
                f"to it, and delete it. Test groups use the prefix '{TEST_GROUP_PREFIX}'. "
                f"Pass --i-accept-side-effects to proceed."
            ),
        }, indent=2))
    else:
        print(
            f"\n  The perf test will create a test group, add members to it,\n"
            f"  and delete it on:\n\n"
            f"    {base_url}\n\n"
            f"  Test groups use the prefix '{TEST_GROUP_PREFIX}'.\n"
            f"  Pass --i-accept-side-effects to proceed.\n"
        )
