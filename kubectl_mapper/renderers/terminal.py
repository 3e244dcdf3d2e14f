"""
Terminal renderer using rich for output formatting

Produces the layered resource map: Ingress, Service, Workload and Storage
layers, always in that order, each as a small tree. Output is built from
rich Text objects (never markup) so resource names cannot inject styles, and
with colors disabled the console emits no ANSI codes while the glyphs and
spacing stay identical.
"""

import io
from typing import Callable, List, Optional, Sequence, Union

from rich.console import Console
from rich.text import Text

from ..graph.builder import ResourceGraph
from ..models import (
    DiscoveryResult,
    DiscoveryWarning,
    RelationshipKind,
    RenderOptions,
    Resource,
    ResourceKind,
    ResourceRef,
)

BRANCH = "├── "
CORNER = "└── "
PIPE = "│   "
SPACE = "    "

DOT = "●"
ARROW = "➜"
DETAILS = "ℹ"
SUCCESS = "✓"
WARNING = "⚠"
ERROR = "✗"
SCALES = "⟳"

TITLE = "Kubernetes Resource Map"
RULE_WIDTH = 80

_RESOURCE_STYLES = {
    ResourceKind.INGRESS: "magenta",
    ResourceKind.SERVICE: "blue",
    ResourceKind.DEPLOYMENT: "yellow",
    ResourceKind.POD: "green",
    ResourceKind.CONFIGMAP: "cyan",
    ResourceKind.SECRET: "red",
    ResourceKind.INGRESSCLASS: "magenta",
    ResourceKind.HPA: "cyan",
}

_STATUS_SYMBOLS = {
    "Running": (SUCCESS, "green"),
    "Ready": (SUCCESS, "green"),
    "Active": (SUCCESS, "green"),
    "Succeeded": (SUCCESS, "green"),
    "Pending": (WARNING, "yellow"),
    "PartiallyReady": (WARNING, "yellow"),
}


def status_symbol(phase: str):
    """(glyph, style) for a normalized phase; unknown phases are errors"""
    return _STATUS_SYMBOLS.get(phase, (ERROR, "red"))


def resource_label(ref: Union[ResourceRef, Resource]) -> str:
    """``Kind/name (namespace)``; cluster-scoped kinds have no namespace suffix"""
    label = f"{ref.kind.short_label}/{ref.name}"
    if ref.namespace:
        label += f" ({ref.namespace})"
    return label


class TerminalRenderer:
    """Layered text renderer

    Rendering only reads the (frozen) graph, so rendering the same graph twice
    yields byte-identical output.
    """

    def __init__(self, options: Optional[RenderOptions] = None):
        self.options = options or RenderOptions()

    def _console(self) -> Console:
        colors = self.options.colors_enabled
        return Console(
            file=io.StringIO(),
            width=self.options.width,
            color_system="standard" if colors else None,
            force_terminal=colors,
            highlight=False,
            emoji=False,
            legacy_windows=False,
        )

    def _emit(self, lines: Sequence[Text]) -> str:
        console = self._console()
        with console.capture() as capture:
            for line in lines:
                console.print(line, soft_wrap=True)
        return capture.get()

    # Line builders

    def _resource_line(self, resource: Resource, is_last: bool, bullet_style: str) -> Text:
        line = Text(CORNER if is_last else BRANCH)
        line.append(DOT, style=bullet_style)
        line.append(" ")
        line.append(resource_label(resource), style=f"bold {_RESOURCE_STYLES.get(resource.kind, 'white')}")
        return line

    def _child_line(self, is_last: bool, glyph: str, glyph_style: str, *parts) -> Text:
        """Child line: continuation indent, two spaces, glyph, then (text, style) parts"""
        line = Text(SPACE if is_last else PIPE)
        line.append("  ")
        line.append(glyph, style=glyph_style)
        for text, style in parts:
            line.append(" ")
            line.append(text, style=style)
        return line

    def _detail_lines(self, resource: Resource, is_last: bool) -> List[Text]:
        return [
            self._child_line(is_last, DETAILS, "dim", (f"{label}: {value}", "dim"))
            for label, value in resource.detail_fields()
        ]

    def _ref_parts(self, ref: ResourceRef):
        return (resource_label(ref), _RESOURCE_STYLES.get(ref.kind, "white"))

    # Layers

    def _render_layer(
        self,
        graph: ResourceGraph,
        title: str,
        kind: ResourceKind,
        bullet_style: str,
        children: Callable[[ResourceGraph, Resource, bool], List[Text]],
    ) -> List[Text]:
        lines = [Text(f"[{title}]", style="bold blue")]
        resources = graph.resources_of_kind(kind)
        if not resources:
            lines.append(Text("(none)", style="dim"))
            return lines

        for i, resource in enumerate(resources):
            is_last = i == len(resources) - 1
            lines.append(self._resource_line(resource, is_last, bullet_style))
            lines.extend(children(graph, resource, is_last))
        return lines

    def _ingress_children(self, graph: ResourceGraph, ingress: Resource, is_last: bool) -> List[Text]:
        lines = []
        if self.options.show_details:
            lines.append(self._child_line(is_last, DETAILS, "dim", (f"Status: {ingress.status.phase}", "dim")))
            uses = graph.relationships_from(ingress.ref, RelationshipKind.USES)
            for rel in uses:
                if rel.target.kind == ResourceKind.SECRET:
                    lines.append(self._child_line(
                        is_last, SUCCESS, "green",
                        (f"TLS: {rel.description}", None),
                        self._ref_parts(rel.target),
                    ))
            for rel in uses:
                if rel.target.kind == ResourceKind.INGRESSCLASS:
                    lines.append(self._child_line(
                        is_last, DETAILS, "dim",
                        (f"Class: {rel.target.name}", "dim"),
                        (f"({rel.description})", "dim"),
                    ))

        for rel in graph.relationships_from(ingress.ref, RelationshipKind.EXPOSES):
            lines.append(self._child_line(
                is_last, ARROW, "blue",
                self._ref_parts(rel.target),
                (f"via {rel.description}", None),
            ))
        return lines

    def _service_children(self, graph: ResourceGraph, service: Resource, is_last: bool) -> List[Text]:
        lines = self._detail_lines(service, is_last) if self.options.show_details else []

        for rel in graph.relationships_from(service.ref, RelationshipKind.TARGETS):
            lines.append(self._child_line(
                is_last, ARROW, "green",
                self._ref_parts(rel.target),
                (f"on {rel.description}", None),
            ))
            pod = graph.resolve(rel.target)
            if self.options.show_details and pod is not None:
                symbol, style = status_symbol(pod.status.phase)
                line = Text(SPACE if is_last else PIPE)
                line.append("     ")
                line.append(symbol, style=style)
                line.append(f" {pod.status.phase}")
                lines.append(line)
        return lines

    def _workload_children(self, graph: ResourceGraph, deployment: Resource, is_last: bool) -> List[Text]:
        lines = []
        if self.options.show_details:
            symbol, style = status_symbol(deployment.status.phase)
            lines.append(self._child_line(is_last, symbol, style, (deployment.status.details, None)))

        for rel in graph.relationships_to(deployment.ref, RelationshipKind.TARGETS):
            if rel.source.kind == ResourceKind.HPA:
                lines.append(self._child_line(
                    is_last, SCALES, "cyan",
                    (rel.description, None),
                    (f"({rel.source.kind.short_label}/{rel.source.name})", "dim"),
                ))

        for rel in graph.relationships_from(deployment.ref, RelationshipKind.OWNS):
            lines.append(self._child_line(is_last, ARROW, "green", self._ref_parts(rel.target)))
        return lines

    def _storage_children(self, graph: ResourceGraph, configmap: Resource, is_last: bool) -> List[Text]:
        lines = self._detail_lines(configmap, is_last) if self.options.show_details else []

        for rel in graph.relationships_to(configmap.ref, RelationshipKind.USES):
            lines.append(self._child_line(
                is_last, ARROW, "blue",
                ("Used by", None),
                self._ref_parts(rel.source),
                (f"({rel.description})", None),
            ))
        return lines

    def render(self, result: Union[DiscoveryResult, ResourceGraph]) -> str:
        """Render the layered map of a discovery result or a bare graph"""
        if isinstance(result, DiscoveryResult):
            graph, namespaces = result.graph, result.namespaces
        else:
            graph, namespaces = result, result.namespaces()

        lines: List[Text] = []
        if not self.options.compact:
            lines.append(Text(TITLE, style="bold green"))
            lines.append(Text("-" * RULE_WIDTH, style="dim"))
        lines.append(Text("External Traffic"))
        lines.append(Text("│"))

        layers = [
            ("Ingress Layer", ResourceKind.INGRESS, "magenta", self._ingress_children),
            ("Service Layer", ResourceKind.SERVICE, "blue", self._service_children),
            ("Workload Layer", ResourceKind.DEPLOYMENT, "yellow", self._workload_children),
            ("Storage Layer", ResourceKind.CONFIGMAP, "yellow", self._storage_children),
        ]
        for i, (title, kind, bullet_style, children) in enumerate(layers):
            if i and not self.options.compact:
                lines.append(Text(""))
            lines.extend(self._render_layer(graph, title, kind, bullet_style, children))

        if not self.options.compact:
            stats = graph.get_graph_stats()
            lines.append(Text(""))
            lines.append(Text(
                f"{stats['resources']} resources, {stats['relationships']} relationships "
                f"in {len(namespaces)} namespace(s)",
                style="dim",
            ))

        return self._emit(lines)

    def render_warnings(self, warnings: Sequence[DiscoveryWarning]) -> str:
        """Warnings block, one line per warning; empty string when there are none"""
        if not warnings:
            return ""

        lines = [Text(f"Warnings ({len(warnings)})", style="bold yellow")]
        for warning in warnings:
            line = Text("  ")
            line.append(WARNING, style="yellow")
            line.append(f" {warning}")
            lines.append(line)
        return self._emit(lines)

    def render_error(self, error_msg: str, details: Optional[str] = None) -> str:
        lines = [Text(f"{ERROR} Error: {error_msg}", style="bold red")]
        if details:
            lines.append(Text(f"  {details}", style="dim"))
        return self._emit(lines)
