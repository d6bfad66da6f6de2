"""Tables and reports printed by the command line."""

from vm_tools.models import FixResult, NetworkAnalysis, NetworkDefinition, VMInfo, VMTemplate
from vm_tools.ui.theme import Theme
from vm_tools.utils import format_bytes, format_duration, format_percent, truncate


def _row(theme: Theme, cells: list[str], widths: list[int]) -> str:
    return "  ".join(theme.pad(cell, width) for cell, width in zip(cells, widths)).rstrip()


def _table(theme: Theme, headers: list[str], rows: list[list[str]], widths: list[int]) -> list[str]:
    lines = [_row(theme, [theme.header(h) for h in headers], widths)]
    lines.extend(_row(theme, row, widths) for row in rows)
    return lines


def vm_table(theme: Theme, vms: list[VMInfo]) -> list[str]:
    """One line per VM."""
    if not vms:
        return [theme.dim("No VMs found")]

    rows = [
        [
            truncate(vm.name, 30),
            theme.state_color(vm.state),
            str(vm.vcpus) if vm.vcpus else "-",
            vm.memory_display if vm.memory_mb else "-",
            format_percent(vm.memory_percent),
            ", ".join(sorted({i.network or i.bridge for i in vm.interfaces})) or "-",
        ]
        for vm in vms
    ]
    return _table(theme, ["NAME", "STATE", "CPUS", "MEMORY", "MEM%", "NETWORK"], rows, [30, 10, 5, 8, 6, 20])


def vm_detail(theme: Theme, vm: VMInfo) -> list[str]:
    """Full status of one VM."""
    lines = [
        f"{theme.bold('Name:')}     {vm.name}",
        f"{theme.bold('UUID:')}     {vm.uuid}",
        f"{theme.bold('State:')}    {theme.state_color(vm.state)}",
        f"{theme.bold('vCPUs:')}    {vm.vcpus}",
        f"{theme.bold('Memory:')}   {vm.memory_mb} MB",
    ]
    if vm.is_running:
        lines.append(f"{theme.bold('CPU:')}      {format_percent(vm.cpu_percent)}")
        lines.append(f"{theme.bold('Mem used:')} {format_percent(vm.memory_percent)}")
    if vm.uptime_seconds is not None:
        lines.append(f"{theme.bold('Uptime:')}   {format_duration(vm.uptime_seconds)}")

    lines.append("")
    lines.append(theme.header("Disks"))
    if vm.disks:
        for disk in vm.disks:
            size = f"{format_bytes(disk.used_bytes)} / {disk.size_display}" if disk.size_bytes else "-"
            lines.append(f"  {theme.pad(disk.target, 6)} {theme.pad(disk.device, 6)} {disk.path or '-'}  {theme.dim(size)}")
    else:
        lines.append(theme.dim("  (none)"))

    lines.append("")
    lines.append(theme.header("Interfaces"))
    if vm.interfaces:
        for iface in vm.interfaces:
            attached = f"network {iface.network}" if iface.network else f"bridge {iface.bridge}"
            bridge = f" ({iface.bridge})" if iface.network and iface.bridge else ""
            ip = f"  {iface.ip_address}" if iface.ip_address else ""
            lines.append(f"  {theme.pad(iface.interface, 8)} {iface.mac_address}  {attached}{bridge}{ip}")
    else:
        lines.append(theme.dim("  (none)"))
    return lines


def network_table(theme: Theme, networks: list[NetworkDefinition]) -> list[str]:
    if not networks:
        return [theme.dim("No networks defined")]
    rows = [
        [
            net.name,
            theme.success("active") if net.active else theme.error("inactive"),
            "yes" if net.autostart else "no",
            net.bridge or "-",
        ]
        for net in networks
    ]
    return _table(theme, ["NAME", "STATE", "AUTOSTART", "BRIDGE"], rows, [20, 10, 10, 12])


def template_table(theme: Theme, templates: dict[str, VMTemplate]) -> list[str]:
    rows = [
        [name, str(t.vcpus), f"{t.memory_mb} MB", f"{t.disk_size_gb} GB", t.os_type]
        for name, t in sorted(templates.items())
    ]
    return _table(theme, ["TEMPLATE", "CPUS", "MEMORY", "DISK", "OS"], rows, [12, 5, 10, 8, 8])


def analysis_report(theme: Theme, analysis: NetworkAnalysis, commands: dict[int, str] | None = None) -> list[str]:
    """Mismatches of one VM with suggested configurations.

    ``commands`` maps a mismatch's index to the manual command resolving it.
    """
    lines = [theme.bold(analysis.vm_name)]
    if analysis.clean:
        lines.append("  " + theme.success("No network issues found"))
    for index, mismatch in enumerate(analysis.mismatches):
        suggested = mismatch.suggested_config
        target = suggested.network or suggested.bridge
        state = "active" if suggested.is_active else "inactive"
        lines.append(f"  {mismatch.interface_name}: {theme.issue_color(mismatch.issue_type)}")
        lines.append(theme.dim(f"    suggest {suggested.mac_address} on {target} ({suggested.bridge}, {state})"))
        if commands and index in commands:
            lines.append(f"    fix: {theme.info(commands[index])}")
    if analysis.partial:
        lines.append("  " + theme.warning("Partial analysis, some issues may be missing:"))
        lines.extend(theme.dim(f"    {w}") for w in analysis.warnings)
    return lines


def fix_report(theme: Theme, results: list[FixResult]) -> list[str]:
    lines: list[str] = []
    for result in results:
        mark = theme.success("fixed") if result.applied else theme.warning("manual")
        lines.append(f"  {theme.pad(mark, 8)} {result.mismatch.interface_name}: {result.message}")
        if result.manual_command:
            lines.append(f"           run: {theme.info(result.manual_command)}")
    return lines
