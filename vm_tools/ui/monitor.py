"""Live full-screen VM monitor."""

import time
from collections.abc import Iterable

from blessed import Terminal

from vm_tools.models import VMInfo
from vm_tools.ui.render import vm_detail
from vm_tools.ui.theme import Theme


class MonitorView:
    """Redraws a VM's status for every snapshot it is given."""

    def __init__(self, term: Terminal, theme: Theme) -> None:
        self.term = term
        self.theme = theme

    def frame(self, vm: VMInfo) -> list[str]:
        """Lines of one screen for ``vm``."""
        title = f"Monitoring {vm.name}  {time.strftime('%H:%M:%S')}"
        lines = [self.theme.header(title), ""]
        lines.extend(vm_detail(self.theme, vm))
        lines.append("")
        lines.append(self.theme.dim("Press Ctrl-C to stop"))
        return lines

    def run(self, snapshots: Iterable[VMInfo]) -> int:
        """Draw snapshots until the iterable ends. Returns frames drawn."""
        count = 0
        with self.term.fullscreen(), self.term.hidden_cursor():
            for vm in snapshots:
                print(self.term.home + self.term.clear, end="")
                for line in self.frame(vm)[: max(self.term.height - 1, 1)]:
                    print(line)
                print("", end="", flush=True)
                count += 1
        return count
