"""Command line interface."""

import argparse
import logging
import sys
import threading
from pathlib import Path

from blessed import Terminal

from vm_tools import __version__
from vm_tools.config import (
    DEFAULT_DISK_GB,
    DEFAULT_NETWORK,
    DEFAULT_RAM_MB,
    DEFAULT_VCPUS,
    IMAGES_DIR,
    LIBVIRT_URI,
    LOG_FORMAT,
    LOG_LEVEL,
    MONITOR_INTERVAL,
    TEMPLATES,
)
from vm_tools.errors import VMError
from vm_tools.services import CommandRunner, DiskImageService, VirshClient, VMManager
from vm_tools.ui.monitor import MonitorView
from vm_tools.ui.prompt import ConfirmPrompt
from vm_tools.ui.render import (
    analysis_report,
    fix_report,
    network_table,
    template_table,
    vm_detail,
    vm_table,
)
from vm_tools.ui.theme import Theme

logger = logging.getLogger(__name__)


class Context:
    """Objects shared by every sub-command."""

    def __init__(self, args: argparse.Namespace, term: Terminal | None = None) -> None:
        self.term = term or Terminal()
        self.theme = Theme(self.term)
        runner = CommandRunner()
        images = DiskImageService(runner)
        client = VirshClient(runner, uri=args.uri, images=images)
        self.manager = VMManager(
            client=client,
            images=images,
            images_dir=args.images_dir,
            default_network=args.default_network,
        )

    def echo(self, lines: list[str] | str = "") -> None:
        if isinstance(lines, str):
            lines = [lines]
        for line in lines:
            print(line)


def cmd_list(ctx: Context, args: argparse.Namespace) -> int:
    vms = ctx.manager.list_vms(all=args.all or not args.running, running_only=args.running)
    ctx.echo(vm_table(ctx.theme, vms))
    return 0


def cmd_start(ctx: Context, args: argparse.Namespace) -> int:
    ctx.echo(f"Starting {args.name}...")
    if ctx.manager.start_vm(args.name, timeout=args.timeout):
        ctx.echo(ctx.theme.success(f"VM '{args.name}' is running"))
    else:
        ctx.echo(ctx.theme.warning(f"VM '{args.name}' may still be starting"))
    return 0


def cmd_stop(ctx: Context, args: argparse.Namespace) -> int:
    ctx.manager.stop_vm(args.name, force=args.force)
    if args.force:
        ctx.echo(ctx.theme.success(f"VM '{args.name}' forced off"))
    else:
        ctx.echo(ctx.theme.success(f"Shutdown requested for '{args.name}'"))
    return 0


def cmd_status(ctx: Context, args: argparse.Namespace) -> int:
    ctx.echo(vm_detail(ctx.theme, ctx.manager.get_vm(args.name)))
    return 0


def cmd_create(ctx: Context, args: argparse.Namespace) -> int:
    result = ctx.manager.create_vm(
        args.name,
        memory_mb=args.memory,
        vcpus=args.cpus,
        disk_size_gb=args.disk,
        iso_path=args.iso,
        template=args.template,
    )
    ctx.echo(ctx.theme.success(f"Created VM '{result.name}'"))
    ctx.echo(f"  disk:    {result.disk_path}")
    ctx.echo(f"  network: {result.network} ({result.mac_address})")
    ctx.echo(ctx.theme.dim(f"Start it with: vm-tools start {result.name}"))
    return 0


def cmd_delete(ctx: Context, args: argparse.Namespace) -> int:
    prompt = ConfirmPrompt(ctx.term, ctx.theme)
    result = ctx.manager.delete_vm(args.name, force=args.force, confirm=prompt.confirm_delete)
    if result.cancelled:
        ctx.echo(ctx.theme.dim("Cancelled"))
        return 0

    ctx.echo(ctx.theme.success(f"Deleted VM '{result.name}'"))
    for path in result.removed_disks:
        ctx.echo(ctx.theme.dim(f"  removed {path}"))
    for warning in result.warnings:
        ctx.echo(ctx.theme.warning(f"  {warning}"))
    return 0


def cmd_clone(ctx: Context, args: argparse.Namespace) -> int:
    result = ctx.manager.clone_vm(args.source, args.target)
    ctx.echo(ctx.theme.success(f"Cloned '{result.source}' to '{result.target}'"))
    for path in result.disk_paths:
        ctx.echo(ctx.theme.dim(f"  {path}"))
    return 0


def cmd_monitor(ctx: Context, args: argparse.Namespace) -> int:
    cancel = threading.Event()
    view = MonitorView(ctx.term, ctx.theme)
    try:
        view.run(ctx.manager.monitor(args.name, interval=args.interval, cancel=cancel))
    finally:
        cancel.set()
    return 0


def cmd_networks(ctx: Context, args: argparse.Namespace) -> int:
    ctx.echo(network_table(ctx.theme, ctx.manager.list_networks()))
    return 0


def cmd_fix_network(ctx: Context, args: argparse.Namespace) -> int:
    reconciler = ctx.manager.reconciler
    analysis = reconciler.analyze(args.name)
    commands = {
        i: reconciler.manual_fix_command(args.name, m)
        for i, m in enumerate(analysis.mismatches)
    }
    ctx.echo(analysis_report(ctx.theme, analysis, None if args.auto else commands))

    if args.auto and analysis.mismatches:
        ctx.echo()
        ctx.echo(fix_report(ctx.theme, reconciler.auto_fix(args.name, analysis.mismatches)))
    return 0


def cmd_fleet_check(ctx: Context, args: argparse.Namespace) -> int:
    analyses = ctx.manager.reconciler.analyze_fleet()
    if not analyses:
        ctx.echo(ctx.theme.dim("No VMs found"))
    for analysis in analyses:
        ctx.echo(analysis_report(ctx.theme, analysis))
    issues = sum(len(a.mismatches) for a in analyses)
    ctx.echo()
    ctx.echo(f"{len(analyses)} VMs checked, {issues} issues found")
    return 0


def cmd_optimize(ctx: Context, args: argparse.Namespace) -> int:
    report = ctx.manager.optimize_vm(args.name)
    if not report.suggestions:
        ctx.echo(ctx.theme.success(f"No suggestions for '{args.name}'"))
    for suggestion in report.suggestions:
        ctx.echo(f"  - {suggestion}")
    if report.analysis.partial:
        ctx.echo(ctx.theme.warning("Network analysis was partial"))
    return 0


def cmd_templates(ctx: Context, args: argparse.Namespace) -> int:
    ctx.echo(template_table(ctx.theme, TEMPLATES))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vm-tools", description="Manage libvirt virtual machines")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--uri", default=LIBVIRT_URI, help=f"libvirt connection URI (default: {LIBVIRT_URI})")
    parser.add_argument("--images-dir", type=Path, default=IMAGES_DIR, help="Directory for disk images")
    parser.add_argument("--default-network", default=DEFAULT_NETWORK, help="Network new VMs attach to")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More output (-vv for debug)")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = subparsers.add_parser("list", help="List VMs")
    p.add_argument("--all", action="store_true", help="Include stopped VMs (default)")
    p.add_argument("--running", action="store_true", help="Only running VMs")
    p.set_defaults(func=cmd_list)

    p = subparsers.add_parser("start", help="Start a VM")
    p.add_argument("name")
    p.add_argument("--timeout", type=float, default=None, help="Seconds to wait for running state")
    p.set_defaults(func=cmd_start)

    p = subparsers.add_parser("stop", help="Shut down a VM")
    p.add_argument("name")
    p.add_argument("-f", "--force", action="store_true", help="Power off immediately")
    p.set_defaults(func=cmd_stop)

    p = subparsers.add_parser("status", help="Show VM details")
    p.add_argument("name")
    p.set_defaults(func=cmd_status)

    p = subparsers.add_parser("create", help="Create a VM")
    p.add_argument("name")
    p.add_argument("-m", "--memory", type=int, default=DEFAULT_RAM_MB, help="Memory in MB")
    p.add_argument("-c", "--cpus", type=int, default=DEFAULT_VCPUS, help="Number of vCPUs")
    p.add_argument("-d", "--disk", type=int, default=DEFAULT_DISK_GB, help="Disk size in GB")
    p.add_argument("-i", "--iso", type=Path, default=None, help="Installation ISO")
    p.add_argument("-t", "--template", choices=sorted(TEMPLATES), default=None, help="Size template")
    p.set_defaults(func=cmd_create)

    p = subparsers.add_parser("delete", help="Delete a VM and its disks")
    p.add_argument("name")
    p.add_argument("-f", "--force", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(func=cmd_delete)

    p = subparsers.add_parser("clone", help="Clone a stopped VM")
    p.add_argument("source")
    p.add_argument("target")
    p.set_defaults(func=cmd_clone)

    p = subparsers.add_parser("monitor", help="Watch a VM live")
    p.add_argument("name")
    p.add_argument("-n", "--interval", type=float, default=MONITOR_INTERVAL, help="Seconds between updates")
    p.set_defaults(func=cmd_monitor)

    p = subparsers.add_parser("networks", help="List virtual networks")
    p.set_defaults(func=cmd_networks)

    p = subparsers.add_parser("fix-network", help="Check a VM's network configuration")
    p.add_argument("name")
    p.add_argument("--auto", action="store_true", help="Apply safe fixes")
    p.set_defaults(func=cmd_fix_network)

    p = subparsers.add_parser("fleet-check", help="Check network configuration of every VM")
    p.set_defaults(func=cmd_fleet_check)

    p = subparsers.add_parser("optimize", help="Suggest configuration improvements")
    p.add_argument("name")
    p.set_defaults(func=cmd_optimize)

    p = subparsers.add_parser("templates", help="List VM templates")
    p.set_defaults(func=cmd_templates)

    return parser


def setup_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, LOG_LEVEL)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not getattr(args, "func", None):
        parser.print_help()
        return 0

    term = Terminal()
    try:
        ctx = Context(args, term)
        return args.func(ctx, args)
    except VMError as e:
        logger.debug("%s failed", args.command, exc_info=True)
        print(Theme(term).error(f"Error: {e.message}"), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return 130
