# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from clawflows import config
from clawflows.capabilities import check_requirements, scan_capabilities
from clawflows.catalog import install_automation, list_installed
from clawflows.interpolation import to_json
from clawflows.logs import log_files, read_logs, save_log
from clawflows.model import AutomationError
from clawflows.registry import RegistryClient, RegistryError, search_index
from clawflows.runner import FlowError, load_automation, resolve_automation_path, run_automation
from clawflows.schedule import disable_instructions, enable_instructions, publish_metadata, publish_steps
from clawflows.ui.console import Console, get_console, set_console

HANDLED_ERRORS = (FlowError, RegistryError, AutomationError, FileNotFoundError)


def _fail(e: Exception) -> None:
    """Print a handled error (traceback in debug mode) and exit 1."""
    console = get_console()
    if isinstance(e, FlowError) and e.kind == "missing_requirement":
        console.print_error(
            "Missing capability",
            e.message,
            details=[f"- {m}" for m in e.details.get("missing", [])],
            suggestion="Install a skill that provides this capability first.",
        )
    else:
        console.print_exception(e)
    sys.exit(1)


def _load_or_exit(name: str, automations_dir: Path):
    console = get_console()
    path = resolve_automation_path(name, automations_dir)
    if not path.exists():
        console.print_error(
            "Automation not found",
            f"Automation not found: {path}",
            suggestion="Install from registry: clawflows install <name>\nOr list installed: clawflows list",
        )
        sys.exit(1)
    try:
        return load_automation(path)
    except HANDLED_ERRORS as e:
        _fail(e)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.option("--dir", "automations_dir", default=None, help="Automations directory (default: ./automations)")
@click.option("--registry", default=None, help="Registry URL (default: https://clawflows.com)")
@click.version_option(package_name="clawflows")
@click.pass_context
def cli(ctx, debug, automations_dir, registry):
    """clawflows - multi-skill automations for OpenClaw agents."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["dir"] = automations_dir
    ctx.obj["registry"] = registry


# ----------------------------------------------------------------------
# Registry commands
# ----------------------------------------------------------------------

@cli.command()
@click.argument("query", nargs=-1)
@click.option("--capability", default=None, help="Only automations requiring this capability")
@click.option("--tag", default=None, help="Only automations with this tag")
@click.pass_context
def search(ctx, query, capability, tag):
    """Search the registry for automations."""
    console = get_console()
    text = " ".join(query)
    if not text and not capability and not tag:
        console.print_info("Usage: clawflows search <query>")
        console.print_info()
        console.print_info("Examples:")
        console.print_info('  clawflows search "youtube"')
        console.print_info("  clawflows search --capability chart-generation")
        return

    client = RegistryClient(config.registry_url(ctx.obj["registry"]))
    try:
        results = search_index(client.fetch_index(), text, capability=capability, tag=tag)
    except HANDLED_ERRORS as e:
        _fail(e)

    label = text or capability or tag
    if not results:
        console.print_info(f'No automations found for "{label}"')
        return

    console.print_info(f"Found {len(results)} automation{'' if len(results) == 1 else 's'}:\n")
    for entry in results:
        console.print_info(f"  {entry.get('name')}")
        console.print_info(f"    {entry.get('description') or 'No description'}")
        console.print_info(f"    Requires: {', '.join(entry.get('requires') or []) or 'none'}")
        if entry.get("tags"):
            console.print_info(f"    Tags: {', '.join(entry['tags'])}")
        console.print_info()
    console.print_info("Install with: clawflows install <name>")


@cli.command()
@click.argument("name")
@click.pass_context
def check(ctx, name):
    """Check whether required capabilities are installed."""
    console = get_console()
    client = RegistryClient(config.registry_url(ctx.obj["registry"]))

    metadata = client.fetch_metadata(name)
    if metadata is None:
        console.print_error("Not found", f'Automation "{name}" not found in registry.')
        sys.exit(1)

    required = [r.get("capability") if isinstance(r, dict) else r for r in metadata.get("requires") or []]
    required = [str(r) for r in required if r]
    if not required:
        console.print_info(f"{name} has no capability requirements.")
        console.print_info(f"Ready to install: clawflows install {name}")
        return

    index = scan_capabilities(config.skills_dirs())
    result = check_requirements(required, index)

    console.print_info(f"{name} requires:\n")
    for cap in required:
        provider = index.get(cap)
        if provider is not None:
            console.print_info(f"  OK       {cap}")
            console.print_info(f"           Provided by: {provider.provider_id}")
        else:
            console.print_info(f"  MISSING  {cap}")
            console.print_info("           Not installed. Find a skill that provides this on ClawdHub.")
        console.print_info()

    if result.ok:
        console.print_info("All requirements satisfied!")
        console.print_info(f"Install with: clawflows install {name}")
    else:
        console.print_info("Missing capabilities. Install the required skills from ClawdHub first:")
        console.print_info("  clawdhub search <capability-name>")


@cli.command()
@click.argument("name")
@click.option("--force", is_flag=True, default=False, help="Overwrite an installed automation")
@click.option("--skip-check", is_flag=True, default=False, help="Install even if capabilities are missing")
@click.pass_context
def install(ctx, name, force, skip_check):
    """Download and install an automation."""
    console = get_console()
    client = RegistryClient(config.registry_url(ctx.obj["registry"]))
    automations_dir = config.automations_dir(ctx.obj["dir"])

    console.print_info(f"Fetching {name}...")
    try:
        result = install_automation(
            client,
            name,
            automations_dir,
            scan_capabilities(config.skills_dirs()),
            force=force,
            skip_check=skip_check,
        )
    except FlowError as e:
        console.print_error(
            "Missing capabilities",
            e.message,
            details=[f"- {m}" for m in e.details.get("missing", [])],
            suggestion="Install required skills from ClawdHub first, or use --skip-check to install anyway.",
        )
        sys.exit(1)
    except HANDLED_ERRORS as e:
        _fail(e)

    if not result.installed:
        console.print_info(f"{name} is already installed at {result.path}")
        console.print_info("Use --force to overwrite.")
        return

    console.print_info(f"Installed {name}")
    console.print_info(f"   Location: {result.path}")
    if result.schedule:
        console.print_info(f"   Schedule: {result.schedule}")
        console.print_info()
        console.print_info("Enable scheduled execution with:")
        console.print_info(f"   clawflows enable {name}")
    console.print_info()
    console.print_info("Run now with:")
    console.print_info(f"   clawflows run {name}")


# ----------------------------------------------------------------------
# Local commands
# ----------------------------------------------------------------------

@cli.command(name="list")
@click.pass_context
def list_cmd(ctx):
    """List installed automations."""
    console = get_console()
    automations_dir = config.automations_dir(ctx.obj["dir"])
    installed = list_installed(automations_dir)

    if not installed:
        console.print_info("No automations installed.")
        console.print_info(f"Directory: {automations_dir}")
        console.print_info()
        console.print_info("Install one with: clawflows install <name>")
        return

    console.print_info(f"Installed automations ({automations_dir}):\n")
    for item in installed:
        console.print_info(f"  {item.name}")
        if item.error:
            console.print_info(f"    (Error reading: {item.error})")
        else:
            if item.description:
                console.print_info(f"    {item.description}")
            if item.schedule:
                console.print_info(f"    Schedule: {item.schedule}")
            if item.requires:
                console.print_info(f"    Requires: {', '.join(item.requires)}")
        console.print_info()
    console.print_info("Run with: clawflows run <name>")


@cli.command()
@click.argument("name")
@click.option("--dry-run", is_flag=True, default=False, help="Show what would happen without executing")
@click.pass_context
def run(ctx, name, dry_run):
    """Run an automation."""
    console = get_console()
    automation = _load_or_exit(name, config.automations_dir(ctx.obj["dir"]))
    console.print_run_started(automation.name, automation.description, dry_run=dry_run)

    try:
        index = scan_capabilities(config.skills_dirs())
        trace = run_automation(automation, index, dry_run=dry_run, console=console)
        console.print_info(f"Completed: {len(trace.completed)}, Skipped: {len(trace.skipped)}")
        if not dry_run:
            log_name = Path(name).stem if name.endswith((".yaml", ".yml")) else name
            path = save_log(trace, log_name, config.logs_dir(ctx.obj["dir"]))
            console.print_debug(f"Log saved to {path}")
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except HANDLED_ERRORS as e:
        _fail(e)


@cli.command()
@click.argument("name")
@click.pass_context
def enable(ctx, name):
    """Show how to enable scheduled execution."""
    console = get_console()
    automation = _load_or_exit(name, config.automations_dir(ctx.obj["dir"]))
    instructions = enable_instructions(name, automation)
    if instructions is None:
        console.print_info(f"{name} doesn't have a schedule defined.")
        console.print_info("Add a trigger.schedule to the automation YAML to enable scheduling.")
        return
    console.print_info(instructions)


@cli.command()
@click.argument("name")
def disable(name):
    """Show how to disable scheduled execution."""
    get_console().print_info(disable_instructions(name))


@cli.command()
@click.argument("name")
@click.option("--last", default=5, type=int, show_default=True, help="Number of runs to show")
@click.pass_context
def logs(ctx, name, last):
    """View execution logs."""
    console = get_console()
    logs_root = config.logs_dir(ctx.obj["dir"])
    files = log_files(name, logs_root)

    if not files:
        console.print_info(f"No logs found for {name}")
        console.print_info()
        console.print_info(f"Run the automation first: clawflows run {name}")
        return

    summaries = read_logs(name, logs_root, last=last)
    console.print_info(f"Recent runs for {name} (showing {len(summaries)} of {len(files)}):\n")
    for s in summaries:
        if s.error:
            console.print_info(f"  {s.file}")
            console.print_info(f"    (Error reading log: {s.error})")
            console.print_info()
            continue
        console.print_info(f"  {s.started_at}")
        console.print_info(f"    Steps: {s.step_count}")
        if s.dry_run:
            console.print_info("    [DRY RUN]")
        console.print_info(f"    Completed: {s.completed}, Skipped: {s.skipped}")
        if s.duration_ms is not None:
            console.print_info(f"    Duration: {s.duration_ms}ms")
        console.print_info()

    if len(files) > last:
        console.print_info(f"Use --last {len(files)} to see all logs.")


@cli.command()
@click.argument("path", type=click.Path())
@click.pass_context
def publish(ctx, path):
    """Show instructions for publishing an automation."""
    console = get_console()
    try:
        automation = load_automation(path)
    except HANDLED_ERRORS as e:
        _fail(e)

    console.print_info(f"Publishing: {automation.name}")
    console.print_info()
    console.print_info(publish_steps(automation.name))
    console.print_info()
    console.print_info("=" * 55)
    console.print_info()
    console.print_info("metadata.json template:")
    console.print_info()
    console.print_info(to_json(publish_metadata(automation), indent=2))
    console.print_info()
    console.print_info("=" * 55)
    console.print_info()
    console.print_info("Full guide: https://clawflows.com/docs/publishing")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
