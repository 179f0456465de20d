"""Mermaid diagram utilities for task graphs.

Renders a TaskGraph as a Mermaid flowchart. When a RunResult is supplied the
nodes are styled by their terminal status, which makes failed branches and
skipped dependents easy to spot.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from taskgraph.core.graph import TaskGraph
    from taskgraph.core.result import RunResult


_STATUS_STYLES = {
    "succeeded": "fill:#38a169,stroke:#2f855a,color:#fff",
    "failed": "fill:#e53e3e,stroke:#c53030,color:#fff",
    "skipped": "fill:#a0aec0,stroke:#718096,color:#fff,stroke-dasharray: 4 4",
    "pending": "fill:#edf2f7,stroke:#a0aec0,color:#1a202c",
    "running": "fill:#3182ce,stroke:#2c5282,color:#fff",
    "cancelled": "fill:#d69e2e,stroke:#b7791f,color:#fff",
}


def generate_mermaid_code(
    graph: "TaskGraph",
    title: Optional[str] = None,
    direction: str = "TD",
    result: Optional["RunResult"] = None,
) -> str:
    """Generate Mermaid flowchart code from a TaskGraph.

    Args:
        graph: The TaskGraph to visualize
        title: Optional title to display above the diagram
        direction: Flowchart direction - "TD" (top-down) or "LR" (left-right)
        result: Optional run result used to color nodes by status

    Returns:
        String containing Mermaid flowchart code

    Example:
        >>> print(generate_mermaid_code(graph, title="Agent workflow"))
    """
    if direction not in ("TD", "LR"):
        raise ValueError(f"Invalid direction: {direction}. Must be 'TD' or 'LR'")

    lines = []

    if title:
        lines.append("---")
        lines.append(f"title: {title}")
        lines.append("---")

    lines.append(f"flowchart {direction}")

    for node_id, task in graph.nodes.items():
        label = task.__class__.__name__
        lines.append(f"    {node_id}[{label}: {node_id}]")

    for edge in graph.edges:
        lines.append(f"    {edge.source} --> {edge.target}")

    if result is not None:
        lines.append("")
        lines.append("    %% Node status styling")
        for status, style in _STATUS_STYLES.items():
            lines.append(f"    classDef {status} {style}")

        lines.append("")
        for node_id in graph.nodes:
            status = result.statuses.get(node_id)
            if status is not None:
                lines.append(f"    class {node_id} {status.value}")

    return "\n".join(lines)
