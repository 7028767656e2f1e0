"""
Main CLI interface for featurerun.

Provides commands for running feature files, managing execution environments
and provisioning the runner binaries.
"""

import argparse
import asyncio
import os
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core.config import Config
from .core.config_manager import ConfigManager
from .core.exceptions import FeatureRunError
from .core.logging_config import setup_logging
from .environments.models import TestEnvironment
from .execution.models import ExecutionOptions
from .execution.notifier import ConsoleStatusNotifier
from .reporting.models import format_duration, summarize
from .session import ExecutionSession, generate_session_id


def _load_config(args: argparse.Namespace) -> Config:
    manager = ConfigManager(Path(args.config) if args.config else None)
    config = manager.get_config()
    config.validate()
    return config


def _create_session(args: argparse.Namespace) -> ExecutionSession:
    config = _load_config(args)
    session_id = generate_session_id()
    setup_logging(config, session_id)
    return ExecutionSession.create(
        config, notifier=ConsoleStatusNotifier(), session_id=session_id
    )


def _print_results(session: ExecutionSession) -> None:
    results = session.get_results()
    if not results:
        return

    print()
    print("📋 Results:")
    for line in summarize(results):
        print(f"   • {line}")

    summary = session.get_summary()
    print()
    print(
        f"📊 {summary.passed}/{summary.total_tests} passed, {summary.failed} failed, "
        f"{summary.errors} errors, {summary.skipped} skipped, {summary.pending} pending "
        f"({summary.success_percent:.1f}%, {format_duration(summary.duration_ms)})"
    )


async def _run(session: ExecutionSession, args: argparse.Namespace) -> int:
    options = ExecutionOptions(
        environment_id=args.env,
        tags=args.tags,
        parallel=args.parallel,
        fail_fast=args.fail_fast,
        output_path=args.output,
        report_path=args.report_dir,
        with_coverage=args.coverage,
        start_dependent_service=args.start_service,
    )
    try:
        await session.execute_tests([Path(f) for f in args.files], options)
    finally:
        await session.shutdown()

    _print_results(session)

    if args.report:
        path = session.generate_report(args.report, args.report_path)
        print(f"📄 Report written to {path}")
        if args.open:
            session.open_report(path)

    summary = session.get_summary()
    if summary.total_tests > 0 and summary.success:
        print("✅ All tests passed!")
        return 0
    print("❌ Test run did not pass")
    return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Run feature files."""
    session = None
    try:
        print(f"🚀 Running {len(args.files)} artifact(s)...")
        session = _create_session(args)
        return asyncio.run(_run(session, args))
    except FeatureRunError as e:
        if session is not None:
            _print_results(session)
        print(f"❌ {e.__class__.__name__}: {e}")
        if args.verbose:
            traceback.print_exc()
        return 1
    except Exception as e:
        print(f"❌ Unexpected error: {e}")
        if args.verbose:
            traceback.print_exc()
        return 1


def cmd_envs(args: argparse.Namespace) -> int:
    """Manage execution environments."""
    try:
        session = _create_session(args)
        environments = session.environments

        if args.envs_command == "list":
            current = environments.current_environment_id
            print("🌐 Environments:")
            for env in environments.get_environments():
                marker = "*" if env.id == current else " "
                print(f" {marker} {env.id:<12} {env.name:<20} {env.base_url}")
            return 0

        if args.envs_command == "use":
            environments.set_current_environment(args.id)
            # Persist the selection as the default for later sessions
            for env in environments.get_environments():
                if env.is_default != (env.id == args.id):
                    environments.update_environment(env.id, is_default=env.id == args.id)
            print(f"✅ Current environment: {args.id}")
            return 0

        if args.envs_command == "add":
            env = environments.add_environment(
                TestEnvironment(
                    id=args.id or "",
                    name=args.name,
                    base_url=args.base_url,
                    timeout_ms=args.timeout_ms,
                    is_default=args.default,
                )
            )
            print(f"✅ Added environment: {env.id}")
            return 0

        if args.envs_command == "remove":
            environments.remove_environment(args.id)
            print(f"✅ Removed environment: {args.id}")
            return 0

        print("❌ Missing environments command (list, use, add, remove)")
        return 1

    except FeatureRunError as e:
        print(f"❌ {e}")
        return 1
    except ValueError as e:
        print(f"❌ Invalid environment: {e}")
        return 1


def cmd_provision(args: argparse.Namespace) -> int:
    """Provision the runner and coverage agent."""
    try:
        session = _create_session(args)
        resolved = asyncio.run(session.provision())
        for name, path in resolved.items():
            print(f"   ✅ {name}: {path}")
        return 0
    except FeatureRunError as e:
        print(f"❌ Provisioning failed: {e}")
        for attempt in getattr(e, "attempts", []):
            print(f"   • {attempt}")
        return 1


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"featurerun {__version__}")

    if args.verbose:
        print()
        print("System Information:")
        print(f"  Python: {sys.version}")
        print(f"  Platform: {sys.platform}")
        print(f"  Working Directory: {os.getcwd()}")

    return 0


def create_main_parser() -> argparse.ArgumentParser:
    """Create main CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="featurerun",
        description="featurerun - Karate feature execution with provisioning and reporting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  featurerun run tests/users.feature --env dev
  featurerun run a.feature b.feature --parallel --report json
  featurerun envs list
  featurerun envs add --id qa --name QA --base-url https://qa.example.com
  featurerun provision
        """,
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--config",
        help="Path to a featurerun.config.yaml or .json file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run feature files")
    run_parser.add_argument("files", nargs="+", help="Feature files to run")
    run_parser.add_argument("--env", help="Environment id, the current one by default")
    run_parser.add_argument("--tags", help="Comma-separated runner tags")
    run_parser.add_argument("--parallel", action="store_true", help="Run all files concurrently")
    run_parser.add_argument("--fail-fast", action="store_true", help="Stop at the first non-passing file")
    run_parser.add_argument("--coverage", action="store_true", help="Collect JaCoCo coverage")
    run_parser.add_argument("--start-service", action="store_true", help="Start the dependent service first")
    run_parser.add_argument("--output", help="Runner output directory")
    run_parser.add_argument("--report-dir", help="Runner report directory")
    run_parser.add_argument(
        "--report",
        choices=["html", "json", "junit"],
        help="Also write a summary report in this format",
    )
    run_parser.add_argument("--report-path", help="Summary report destination")
    run_parser.add_argument("--open", action="store_true", help="Open the summary report")
    run_parser.set_defaults(func=cmd_run)

    # Environments command
    envs_parser = subparsers.add_parser("envs", help="Manage execution environments")
    envs_sub = envs_parser.add_subparsers(dest="envs_command")
    envs_sub.add_parser("list", help="List environments")
    use_parser = envs_sub.add_parser("use", help="Select the current environment")
    use_parser.add_argument("id")
    add_parser = envs_sub.add_parser("add", help="Register an environment")
    add_parser.add_argument("--id", help="Environment id, generated when omitted")
    add_parser.add_argument("--name", required=True)
    add_parser.add_argument("--base-url", required=True)
    add_parser.add_argument("--timeout-ms", type=int, default=5000)
    add_parser.add_argument("--default", action="store_true", help="Make it the current environment")
    remove_parser = envs_sub.add_parser("remove", help="Remove an environment")
    remove_parser.add_argument("id")
    envs_parser.set_defaults(func=cmd_envs)

    # Provision command
    provision_parser = subparsers.add_parser("provision", help="Download the runner and coverage agent")
    provision_parser.set_defaults(func=cmd_provision)

    # Version command
    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(func=cmd_version)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_main_parser()

    if args is None:
        args = sys.argv[1:]

    parsed_args = parser.parse_args(args)

    if not hasattr(parsed_args, "func"):
        parser.print_help()
        return 1

    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
