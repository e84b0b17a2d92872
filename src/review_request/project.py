"""Project details and release verification.

The hosting API client itself is supplied by the caller; this module only
defines the interface it must satisfy and how its results are checked.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from review_request.console import Console
from review_request.constants import (
    DEFAULT_TEST_DIR,
    RELEASE_WORKFLOW_EVENT,
    RELEASE_WORKFLOW_ID,
    VERSION_PATTERN,
)
from review_request.phase_runner import ReviewRequestError


class ProjectParseError(ReviewRequestError):
    """Raised when a ref does not name a project release."""
    pass


class ReleaseVerificationError(ReviewRequestError):
    """Raised when a release or its test run cannot be verified."""
    pass


@dataclass
class ProjectDetails:
    owner: str
    main_repo: str  # owner/repo
    test_repo: str  # owner/test_dir
    version: str
    project: int
    reviews: int
    patches: int


def parse_project(
    owner: str,
    repo: str,
    ref: str,
    test_dir: str = DEFAULT_TEST_DIR,
    console: Optional[Console] = None,
) -> ProjectDetails:
    """
    Parse project number, review and patch counts from a release ref.

    The last path segment of the ref must look like v1.2.3, with the
    project number between 1 and 4.

    Raises:
        ProjectParseError: If the ref does not match
    """
    version = ref.split("/")[-1]
    matched = re.match(VERSION_PATTERN, version)
    if not matched:
        raise ProjectParseError(f"Unable to parse project information from: {ref}")

    details = ProjectDetails(
        owner=owner,
        main_repo=f"{owner}/{repo}",
        test_repo=f"{owner}/{test_dir}",
        version=version,
        project=int(matched.group(1)),
        reviews=int(matched.group(2)),
        patches=int(matched.group(3)),
    )

    if console is not None:
        with console.group("Parsing project details..."):
            console.info(f"Project version: {details.version}")
            console.info(f"Project number:  {details.project}")
            console.info(f"Project reviews: {details.reviews}")
            console.info(f"Project patches: {details.patches}")

    return details


# =============================================================================
# HOSTING API BOUNDARY
# =============================================================================

@dataclass
class HostingResponse:
    """Response from a hosting API call. Trust data only when status is 200."""
    status: int
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status == 200


class HostingClient(ABC):
    """Interface to the source-hosting REST API."""

    @abstractmethod
    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> HostingResponse:
        pass

    @abstractmethod
    def list_workflow_runs(
        self, owner: str, repo: str, workflow_id: str, event: str
    ) -> HostingResponse:
        pass

    @abstractmethod
    def list_pull_requests(self, owner: str, repo: str, **filters: Any) -> HostingResponse:
        pass

    @abstractmethod
    def get_milestone(self, owner: str, repo: str, milestone_number: int) -> HostingResponse:
        pass


def verify_release(
    client: HostingClient,
    owner: str,
    repo: str,
    release: str,
    console: Console,
) -> Dict[str, Any]:
    """
    Check that a release exists and its test workflow run succeeded.

    Returns:
        {"release": release data, "workflow": matching workflow run}

    Raises:
        ReleaseVerificationError: With a lower-cased reason on any failure
    """
    details: Dict[str, Any] = {}

    with console.group("Checking release details..."):
        try:
            console.info(f"Fetching release {release} from {repo}...")
            result = client.get_release_by_tag(owner, repo, release)
            if not result.ok:
                raise ReleaseVerificationError(f"{result.status} exit code")
            details["release"] = result.data
        except Exception as e:
            raise ReleaseVerificationError(
                f"Unable to fetch release {release} ({str(e).lower()})."
            ) from e

        console.info()

        try:
            console.info("Getting workflow runs...")
            result = client.list_workflow_runs(
                owner, repo, RELEASE_WORKFLOW_ID, RELEASE_WORKFLOW_EVENT
            )
            if not result.ok:
                raise ReleaseVerificationError(f"{result.status} exit code")

            runs = result.data.get("workflow_runs", [])
            branches = [run.get("head_branch") for run in runs]
            console.info(f"Fetched {len(runs)} workflow runs: {', '.join(map(str, branches))}")

            found = next((run for run in runs if run.get("head_branch") == release), None)
            if found is None:
                raise ReleaseVerificationError("workflow run not found")

            if found.get("status") != "completed" or found.get("conclusion") != "success":
                raise ReleaseVerificationError(
                    f"run #{found.get('run_number')} ({found.get('id')}) not successful"
                )

            details["workflow"] = found
        except Exception as e:
            raise ReleaseVerificationError(
                f"Unable to verify release {release} ({str(e).lower()})."
            ) from e

    return details
