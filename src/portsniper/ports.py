"""Port aggregation for portsniper."""

from collections.abc import Iterable

from portsniper.models import ListenerRecord, PortInfo
from portsniper.resolver import ProcessTable, resolve_display_name


def aggregate_ports(records: Iterable[ListenerRecord], table: ProcessTable) -> list[PortInfo]:
    """
    Merge listener records into one PortInfo per port, ordered by port.

    Only one process can hold a LISTEN socket on a port, so a later record
    for the same port replaces an earlier one.
    """
    by_port: dict[int, PortInfo] = {}

    for record in records:
        by_port[record.port] = PortInfo(
            pid=record.pid,
            name=resolve_display_name(record.pid, record.name_hint, table),
            port=record.port,
            protocol=record.protocol.value,
        )

    return [by_port[port] for port in sorted(by_port)]


def filter_ports(ports: Iterable[PortInfo], query: str) -> list[PortInfo]:
    """Keep ports whose number, process name or pid contains query."""
    needle = query.strip().lower()
    if not needle:
        return list(ports)

    return [
        info
        for info in ports
        if needle in str(info.port) or needle in info.name.lower() or needle in str(info.pid)
    ]
