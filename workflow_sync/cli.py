"""Command-line interface for topic-workflow-sync.

This module provides the CLI options and the run-level error handling for the
workflow synchronization tool.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from .config import DEFAULT_CONFIG_PATH, build_config, load_config_file
from .errors import ConfigurationError
from .github import GitHubClient
from .sync import RunResult, TopicWorkflowSync


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration.

    Args:
        verbose: Enable debug logging if True
    """
    level = logging.DEBUG if verbose else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level, format=format_str, handlers=[logging.StreamHandler()]
    )


def set_failed(message: str) -> None:
    """Mark the workflow step as failed.

    Emits an ``error`` workflow command so the message is shown as the
    failure reason in the Actions UI.
    """
    print(f"::error::{message}", flush=True)


def write_outputs(result: RunResult) -> None:
    """Expose run results as step outputs when running inside Actions."""
    output_file = os.getenv("GITHUB_OUTPUT")
    if not output_file:
        return

    with open(output_file, "a", encoding="utf-8") as f:
        f.write(f"repositories={json.dumps(result.repositories)}\n")
        f.write(f"changed-files={result.changed_count}\n")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Sync workflow files into every repository tagged with a topic",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync ./workflows into every repository of an organization tagged 'ci'
  python main.py --org my-org --topic ci --directory ./workflows

  # Prefix commit messages and only show what would change
  python main.py --user octocat --topic ci --directory ./workflows \\
      --prefix "[Sync]" --dry-run

  # Read owner, topic and directory from a config file
  python main.py -c .github/topic-workflow-sync.yaml
        """.strip(),
    )

    parser.add_argument("--user", help="User whose repositories are synced")
    parser.add_argument(
        "--org",
        help="Organization whose repositories are synced (exclusive with --user)",
    )

    parser.add_argument(
        "--topic", help="Only repositories tagged with this topic are synced"
    )

    parser.add_argument(
        "--directory",
        help="Local directory containing the workflow files to sync",
    )

    parser.add_argument(
        "--prefix",
        default=None,
        help="Prefix prepended to every commit message",
    )

    parser.add_argument(
        "--token",
        default=None,
        help="GitHub token (default: GITHUB_TOKEN environment variable)",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help=f"Path to a YAML configuration file (default: {DEFAULT_CONFIG_PATH} if present)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be created or updated without writing",
    )

    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        default=None,
        help="Keep syncing the remaining repositories after a repository fails",
    )

    parser.add_argument(
        "--timeout",
        type=int,
        default=30,
        help="Request timeout in seconds (default: 30)",
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging"
    )

    parser.add_argument(
        "--test-connection",
        action="store_true",
        help="Test GitHub connectivity and exit",
    )

    return parser


def _inputs_from_args(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "user": args.user,
        "org": args.org,
        "topic": args.topic,
        "directory": args.directory,
        "prefix": args.prefix,
        "token": args.token,
        "continue_on_error": args.continue_on_error,
    }


def check_connection(token: str, timeout: int) -> bool:
    """Check that the token can reach the GitHub API."""
    logger = logging.getLogger(__name__)
    logger.info("Testing GitHub connectivity...")

    with GitHubClient(token=token, timeout=timeout) as client:
        is_connected = client.test_connection()

    if is_connected:
        logger.info("✓ GitHub connectivity test passed")
    else:
        logger.error("✗ GitHub connectivity test failed")
    return is_connected


def main() -> None:
    """Main entry point for the CLI application."""
    parser = create_parser()
    args = parser.parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        # Test connection if requested
        if args.test_connection:
            token = args.token or os.getenv("GITHUB_TOKEN")
            if not token:
                set_failed("Input required and not supplied: token")
                sys.exit(1)
            sys.exit(0 if check_connection(token, args.timeout) else 1)

        # Load and validate configuration
        try:
            if args.config is not None:
                file_values = load_config_file(args.config, required=True)
            else:
                file_values = load_config_file(DEFAULT_CONFIG_PATH)
            config = build_config(_inputs_from_args(args), file_values)
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e}")
            set_failed(str(e))
            sys.exit(1)

        # Perform synchronization
        with TopicWorkflowSync(config, timeout=args.timeout) as sync:
            result = sync.run(dry_run=args.dry_run)

        write_outputs(result)

        # Report results
        if result.is_success:
            logger.info(f"✓ Sync completed successfully: {result}")
        else:
            logger.error(f"✗ Sync completed with errors: {result}")

            for repo_result in result.failed_repositories:
                logger.error(
                    f"  {repo_result.repository}/{repo_result.failed_file}: "
                    f"{repo_result.error}"
                )
            set_failed(str(result.error))

        # Exit with appropriate code
        sys.exit(0 if result.is_success else 1)

    except KeyboardInterrupt:
        logger.info("Sync interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            logger.exception("Full traceback:")
        set_failed(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
