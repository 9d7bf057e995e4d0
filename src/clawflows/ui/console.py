"""Console output formatting utilities for clawflows."""

from __future__ import annotations

import sys
from typing import Any, Optional

from ..interpolation import to_json


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_run_started(
        self,
        name: str,
        description: Optional[str] = None,
        dry_run: bool = False,
    ) -> None:
        """Print run start information."""
        print(f"Running: {name}")
        if description:
            print(f"  {description}")
        if dry_run:
            print("  [DRY RUN]")
        print()

    def print_step(self, index: int, total: int, name: str) -> None:
        """Print step start message (index is 0-based)."""
        print(f"[{index + 1}/{total}] {name}")

    def print_condition_not_met(self, condition: str) -> None:
        print(f"  Condition not met: {condition}")

    def print_exit(self) -> None:
        print("  Exiting automation.")

    def print_skip_to(self, target: str) -> None:
        print(f"  Skipping to: {target}")

    def print_capability(self, capability: str, method: Optional[str], provider: str) -> None:
        """Print which provider fulfils a capability call."""
        print(f"  Capability: {capability}.{method}")
        print(f"  Provider: {provider}")

    def print_dry_run(self, args: Any, note: str = "not executing") -> None:
        print(f"  Args: {_pretty(args)}")
        print(f"  [DRY RUN - {note}]")

    def print_instructions(self, instructions: str, args: Any) -> None:
        """Print operator instructions for a live capability call."""
        print()
        print("  Execute these instructions:")
        print("  " + "-" * 29)
        for line in instructions.split("\n"):
            print(f"  {line}")
        print("  " + "-" * 29)
        print()
        print(f"  With args: {_pretty(args)}")

    def print_generic_instructions(
        self,
        provider: str,
        capability: str,
        method: Optional[str],
        args: Any,
    ) -> None:
        """Print fallback instructions when a provider ships no manifest."""
        print(f"  WARNING: No CAPABILITY.md found for {provider}")
        print(f"     The agent should use the {provider} skill to fulfill:")
        print(f"     {capability}.{method}({to_json(args)})")

    def print_capture(self, variable: str, pending: bool = False) -> None:
        if pending:
            print(f"  -> Capture result as: {variable}")
        else:
            print(f"  -> Captured as: {variable}")

    def print_action(self, kind: str) -> None:
        print(f"  Action: {kind}")

    def print_message(self, message: Any, attachments: Any = None, dry_run: bool = False) -> None:
        """Print a notification as it would be sent."""
        print(f"  Message: {message}")
        if dry_run:
            print("  [DRY RUN - not sending]")
            return
        if attachments is not None:
            print(f"  Attachments: {_pretty(attachments, indent=None)}")
        print("  -> Send via configured notification channel")

    def print_template_rendered(self, length: int) -> None:
        print(f"  Template rendered ({length} chars)")

    def print_evaluated(self, result: Any) -> None:
        print(f"  Evaluated: {_pretty(result, indent=None)}")

    def print_step_error(self, message: str) -> None:
        """Print a recoverable error inside a step."""
        print(f"  Error: {message}", file=sys.stderr)

    def print_done(self) -> None:
        print("Done!")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str = "") -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


def _pretty(value: Any, indent: Optional[int] = 2) -> str:
    return to_json(value, indent=indent)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
