"""Constants for the review request action."""

# Default project directories (must match pom.xml and repository names)
DEFAULT_MAIN_DIR = "project-main"  # otherwise project-username
DEFAULT_TEST_DIR = "project-tests"

# Reserved state keys
STATE_KEYS_SENTINEL = "keys"
WARNINGS_STATE_KEY = "warnings"
RESERVED_STATE_KEYS = (STATE_KEYS_SENTINEL, WARNINGS_STATE_KEY)

# Exit code reported when a command cannot be launched at all
LAUNCH_FAILURE_EXIT_CODE = 127

# Release tags look like v1.2.3 (project, reviews, patches)
VERSION_PATTERN = r"^v([1-4])\.(\d+)\.(\d+)$"

RELEASE_WORKFLOW_ID = "run-tests.yml"
RELEASE_WORKFLOW_EVENT = "release"

REQUEST_PHASE_LABEL = '"Request Review"'

NOT_IMPLEMENTED_MESSAGE = (
    "This action is not yet implemented. "
    "Contact the instructor for instructions on how to request code review."
)

