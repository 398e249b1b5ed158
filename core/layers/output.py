# core/layers/output.py
"""
OutputLayer - terminal presentation of decoded worker payloads.

Dispatch on payload shape:
- known array field (pods, devboxes, ...)   -> table
- manifest / events / logs (inspect)         -> sections
- {"success": false, ...}                    -> inline error
- anything else                              -> raw JSON dump

Raw mode always dumps JSON.
"""

import json
import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml
from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.syntax import Syntax
from rich.table import Table

from core.models import AggregatedResult
from utils.logger import log_debug
from utils.sort_keys import sort_keys


Column = Tuple[str, Callable[[Dict[str, Any]], Any]]


def _field(name: str, default: str = "-") -> Callable[[Dict[str, Any]], Any]:
    return lambda item: item.get(name) if item.get(name) not in (None, "") else default


def _nested(outer: str, inner: str, default: str = "-") -> Callable[[Dict[str, Any]], Any]:
    def getter(item: Dict[str, Any]) -> Any:
        value = (item.get(outer) or {}).get(inner)
        return default if value in (None, "") else value
    return getter


# Array field -> (title, columns)
TABLE_SPECS: Dict[str, Tuple[str, List[Column]]] = {
    "clusters": ("Clusters (databases)", [
        ("Name", _field("name")), ("Type", _field("type")),
        ("Status", _field("status")), ("Version", _field("version")),
    ]),
    "devboxes": ("Devboxes", [
        ("Name", _field("name")), ("Status", _field("status")),
        ("Network", lambda d: json.dumps(d.get("network") or {})),
    ]),
    "pods": ("Pods", [
        ("Name", _field("name")), ("Status", _field("status")),
        ("IP", _field("ip")), ("Node", _field("node")),
    ]),
    "ingresses": ("Ingresses", [
        ("Name", _field("name")),
        ("Class", lambda i: i.get("ingressClass") or i.get("class") or "-"),
        ("Hosts", _field("hosts")), ("Paths", _field("paths")),
        ("Backend", lambda i: f"{i['backendService']}:{i.get('backendPort')}" if i.get("backendService") else i.get("backend") or "-"),
        ("Address", _field("address")),
    ]),
    "certificates": ("Certificates", [
        ("Name", _field("name")), ("Ready", _field("ready")),
        ("Secret", _field("secret")), ("Issuer", _field("issuer")),
        ("Expires", _field("notAfter")), ("Age", _field("age")),
    ]),
    "cronjobs": ("CronJobs", [
        ("Name", _field("name")), ("Schedule", _field("schedule", "No schedule")),
        ("Active", _field("active", "0")),
        ("Suspend", lambda c: "Yes" if c.get("suspend") else "No"),
        ("Last Schedule", _field("lastSchedule", "Never")), ("Age", _field("age")),
    ]),
    "objectstoragebuckets": ("Object storage buckets", [
        ("Name", _field("name")), ("Policy", _field("policy")),
        ("Size", _field("size")), ("Bucket Name", _field("bucketName")),
        ("Age", _field("age")),
    ]),
    "accounts": ("Accounts", [
        ("Name", _field("name")), ("Type", _nested("status", "type", "Unknown")),
        ("Balance", _nested("status", "balance", "N/A")),
        ("Created", _nested("status", "creationTime")),
    ]),
    "debts": ("Debts", [
        ("Name", _field("name")), ("Type", _nested("status", "type", "Unknown")),
        ("Total", _nested("status", "totalDebt", "0")),
    ]),
    "nodes": ("Cluster nodes", [
        ("Name", _field("name")), ("Roles", _field("roles", "worker")),
        ("Status", _field("status", "Unknown")), ("IP", _field("ip")),
        ("OS Image", _field("osImage")), ("Age", _field("age")),
    ]),
}

# quotas render transposed, one table per quota
TABLE_FIELDS = list(TABLE_SPECS) + ["quotas"]

_LOG_STYLES = [
    (re.compile(r"error|fail|fatal|exception|panic", re.IGNORECASE), "red"),
    (re.compile(r"warn", re.IGNORECASE), "yellow"),
    (re.compile(r"\binfo\b", re.IGNORECASE), "cyan"),
]


def log_line_style(line: str) -> str:
    for pattern, style in _LOG_STYLES:
        if pattern.search(line):
            return style
    return "dim"


def _event_time(event: Dict[str, Any]) -> str:
    stamp = event.get("lastTimestamp") or event.get("firstTimestamp")
    if not stamp:
        return "Unknown Time"
    try:
        return datetime.fromisoformat(str(stamp).replace("Z", "+00:00")).strftime("%H:%M:%S")
    except ValueError:
        return str(stamp)


class OutputLayer:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    # ═══════════════════════════════════════════════════════
    # MESSAGES
    # ═══════════════════════════════════════════════════════

    def info(self, message: str) -> None:
        self.console.print(escape(message))

    def hint(self, message: str) -> None:
        self.console.print(f"[dim]{escape(message)}[/dim]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def render_summary(self, total: int, kinds: int, failed: int = 0) -> None:
        line = f"Total: {total} item(s) across {kinds} resource type(s)"
        if failed:
            line += f", {failed} failed"
        self.console.print(Rule(escape(line), style="dim"))

    # ═══════════════════════════════════════════════════════
    # RESULTS
    # ═══════════════════════════════════════════════════════

    def render_result(self, result: AggregatedResult, raw: bool = False) -> None:
        kind = result.resource_kind
        outcome = result.outcome

        if not outcome.success:
            self.console.print(f"[bold red]✗ {escape(kind)}:[/bold red] {escape(outcome.error or 'Unknown error')}")
            return

        data = outcome.data
        if raw:
            self.render_raw(data)
            return
        if data is None:
            self.console.print(f"[dim]{escape(kind)}: no data[/dim]")
            return
        if not isinstance(data, dict):
            self.render_raw(data)
            return

        if data.get("success") is False:
            self._render_payload_error(kind, data)
            return

        for field_name in TABLE_FIELDS:
            items = data.get(field_name)
            if isinstance(items, list):
                self.render_table(field_name, items, data.get("namespace"), data.get("total"))
                return

        if isinstance(data.get("events"), list) and "manifest" not in data:
            self.render_events(data["events"], data.get("namespace"))
            return

        if any(k in data for k in ("manifest", "events", "logs")):
            self.render_inspect(kind, data)
            return

        log_debug(f"[Output] Unrecognized payload shape for {kind}: {list(data)[:10]}")
        self.render_raw(data)

    def render_raw(self, data: Any) -> None:
        if isinstance(data, str):
            self.console.print(escape(data), highlight=False)
            return
        self.console.print_json(json.dumps(data, ensure_ascii=False, default=str))

    def render_table(self, field_name: str, items: List[Dict[str, Any]], namespace: Optional[str] = None, total: Optional[int] = None) -> None:
        if field_name == "quotas":
            self.render_quotas(items, namespace)
            return

        title, columns = TABLE_SPECS[field_name]
        count = total or len(items)
        heading = f"{title}: {count}"
        if namespace:
            heading += f" in {namespace}"

        table = Table(title=escape(heading), title_justify="left")
        for header, _ in columns:
            table.add_column(header)
        for item in items:
            if not isinstance(item, dict):
                continue
            table.add_row(*(escape(str(getter(item))) for _, getter in columns))
        self.console.print(table)

    def render_quotas(self, quotas: List[Dict[str, Any]], namespace: Optional[str] = None) -> None:
        """One transposed table per quota, details like 'cpu: 100m/1, memory: 1Gi/2Gi'."""
        heading = f"Resource quotas: {len(quotas)}"
        if namespace:
            heading += f" in {namespace}"
        self.console.print(f"[bold]{escape(heading)}[/bold]")

        for quota in quotas:
            table = Table(title=escape(f"Quota: {quota.get('name', '-')}"), title_justify="left")
            table.add_column("Resource")
            table.add_column("Used")
            table.add_column("Limit")

            rows = []
            for entry in str(quota.get("details") or "").split(", "):
                if not entry:
                    continue
                key, _, value = entry.partition(": ")
                used, _, limit = value.partition("/")
                rows.append((key, used or "-", limit or "-"))
            for row in sorted(rows):
                table.add_row(*(escape(v) for v in row))
            self.console.print(table)

    def render_events(self, events: List[Dict[str, Any]], namespace: Optional[str] = None) -> None:
        heading = f"Events: {len(events)}"
        if namespace:
            heading += f" in {namespace}"
        self.console.print(Rule(escape(heading), align="left"))
        for event in events:
            if not isinstance(event, dict):
                continue
            warn = event.get("type") == "Warning"
            header = f"[{_event_time(event)}] {event.get('type', '-')}/{event.get('reason', '-')} | {event.get('object', '-')}"
            style = "yellow" if warn else "default"
            self.console.print(f"[{style}]{'!' if warn else ' '} {escape(header)}[/{style}]")
            self.console.print(f"    └─ {escape(str(event.get('message', '')))}")
        self.console.print(Rule(style="dim"))

    def render_inspect(self, kind: str, data: Dict[str, Any]) -> None:
        manifest = data.get("manifest")
        if isinstance(manifest, dict):
            meta = manifest.get("metadata") or {}
            title = f"{manifest.get('kind', kind)}: {meta.get('name', '-')}"
            if meta.get("namespace"):
                title += f"  (ns {meta['namespace']})"
            self.console.print(Rule(f"[bold cyan]{escape(title)}[/bold cyan]", align="left"))
            manifest_yaml = yaml.safe_dump(sort_keys(manifest), sort_keys=False, allow_unicode=True)
            self.console.print(Syntax(manifest_yaml, "yaml", word_wrap=True))

        events = data.get("events")
        if isinstance(events, list):
            self.console.print("[bold cyan]Events[/bold cyan]")
            if not events:
                self.console.print("  [dim]<none>[/dim]")
            for event in events:
                if isinstance(event, dict):
                    line = f"{_event_time(event)}  {event.get('type', '-')}  {event.get('reason', '-')}  {event.get('message', '')}"
                    style = "yellow" if event.get("type") == "Warning" else "default"
                    self.console.print(f"  [{style}]{escape(line)}[/{style}]")

        logs = data.get("logs")
        if isinstance(logs, str):
            self.console.print("[bold cyan]Logs[/bold cyan]")
            for line in logs.splitlines():
                self.console.print(f"[{log_line_style(line)}]{escape(line)}[/]", highlight=False)

        for warning in data.get("warnings") or []:
            self.warning(str(warning))

    def _render_payload_error(self, kind: str, data: Dict[str, Any]) -> None:
        error = data.get("error")
        message = error.get("message") if isinstance(error, dict) else error
        self.console.print(f"[bold red]✗ {escape(kind)}:[/bold red] {escape(str(message or 'Unknown error'))}")
        if isinstance(error, dict) and error.get("details"):
            self.console.print_json(json.dumps(error["details"], default=str))
