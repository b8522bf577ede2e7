"""Main entry point for the topic-workflow-sync action.

Translates GitHub Actions inputs (``INPUT_*`` environment variables) into
command-line arguments and runs the CLI.
"""

import os
import sys

from workflow_sync.cli import main

VALUE_INPUTS = {
    "INPUT_USER": "--user",
    "INPUT_ORG": "--org",
    "INPUT_TOPIC": "--topic",
    "INPUT_DIRECTORY": "--directory",
    "INPUT_PREFIX": "--prefix",
    "INPUT_TOKEN": "--token",
    "INPUT_CONFIG": "--config",
    "INPUT_TIMEOUT": "--timeout",
}

FLAG_INPUTS = {
    "INPUT_DRY_RUN": "--dry-run",
    "INPUT_CONTINUE_ON_ERROR": "--continue-on-error",
    "INPUT_VERBOSE": "--verbose",
}


def args_from_env(environ=None) -> list[str]:
    """Build CLI arguments from GitHub Actions inputs.

    Empty inputs are treated as not supplied; flag inputs are enabled by the
    string ``true`` (case-insensitive).
    """
    env = os.environ if environ is None else environ
    args = []

    for name, option in VALUE_INPUTS.items():
        value = env.get(name, "").strip()
        if value:
            args.extend([option, value])

    for name, option in FLAG_INPUTS.items():
        if env.get(name, "false").strip().lower() == "true":
            args.append(option)

    return args


def main_with_env_parsing() -> None:
    """Main entry point that handles GitHub Actions environment variables."""
    sys.argv.extend(args_from_env())
    main()


if __name__ == "__main__":
    main_with_env_parsing()
