"""Configuration loading for the review request action."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from review_request.constants import DEFAULT_MAIN_DIR, DEFAULT_TEST_DIR


@dataclass
class Config:
    """Action configuration loaded from inputs and environment."""

    token: str
    repository: str = ""  # owner/repo
    ref: str = ""
    main_dir: str = DEFAULT_MAIN_DIR
    test_dir: str = DEFAULT_TEST_DIR
    steps_file: Optional[str] = None  # None means the packaged definition

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0] if self.repository else ""

    @property
    def repo(self) -> str:
        return self.repository.split("/", 1)[1] if "/" in self.repository else ""


class ConfigError(Exception):
    """Raised when required configuration is missing."""
    pass


def load_config(require_all: bool = True) -> Optional[Config]:
    """
    Load configuration from action inputs and environment variables.

    Action inputs arrive as INPUT_<NAME> variables.

    Args:
        require_all: If True, raises ConfigError if required vars are missing.
                     If False, returns None for missing config.

    Returns:
        Config object if all required vars present, None if require_all=False and missing.

    Raises:
        ConfigError: If require_all=True and required vars are missing.
    """
    load_dotenv()

    token = os.environ.get("INPUT_TOKEN")

    if not token:
        if require_all:
            raise ConfigError(
                "Missing required environment variables: INPUT_TOKEN\n"
                "Pass the token input to the action or set it in a .env file."
            )
        return None

    return Config(
        token=token,
        repository=os.environ.get("GITHUB_REPOSITORY", ""),
        ref=os.environ.get("GITHUB_REF", ""),
        main_dir=os.environ.get("REVIEW_MAIN_DIR") or DEFAULT_MAIN_DIR,
        test_dir=os.environ.get("REVIEW_TEST_DIR") or DEFAULT_TEST_DIR,
        steps_file=os.environ.get("REVIEW_STEPS_FILE") or None,
    )
