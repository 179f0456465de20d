"""Core graph data structures for taskgraph.

This module implements the directed acyclic graph of tasks. Edges are
validated as they are added, so a TaskGraph is acyclic at every point of its
construction and can be handed to the Executor as-is.
"""

from typing import Dict, Iterable, List, Optional, Set, Tuple
from pydantic import BaseModel

from taskgraph.core.task import Task
from taskgraph.utils.errors import (
    CycleDetectedError,
    DuplicateNodeError,
    GraphValidationError,
    UnknownNodeError,
)


class Edge(BaseModel):
    """Represents a dependency between two nodes.

    The target may not start until the source has completed successfully.
    """

    source: str
    target: str

    def __hash__(self):
        return hash((self.source, self.target))


class TaskGraph:
    """Explicit DAG of tasks with declared dependency edges.

    The graph keeps, for every node, the set of its predecessors and the list
    of its successors, which lets the executor check readiness in O(1) as
    predecessors complete.

    Attributes:
        nodes: Mapping of node IDs to Task instances
        edges: List of edges in insertion order
        predecessors: Mapping of node IDs to their predecessor IDs
        successors: Mapping of node IDs to their successor IDs

    Example:
        >>> graph = TaskGraph()
        >>> a = graph.add_node(FunctionTask("a", write_x))
        >>> b = graph.add_node(FunctionTask("b", read_x))
        >>> graph.add_edge(a, b)
        Edge(source='a', target='b')
    """

    def __init__(self):
        self.nodes: Dict[str, Task] = {}
        self.edges: List[Edge] = []
        self.predecessors: Dict[str, Set[str]] = {}
        self.successors: Dict[str, List[str]] = {}
        # Number of runs currently executing this graph
        self._active_runs = 0

    @classmethod
    def from_tasks_and_edges(
        cls, tasks: Iterable[Task], edges: Iterable[Tuple[str, str]]
    ) -> "TaskGraph":
        """Factory method to construct a TaskGraph from tasks and edges.

        Args:
            tasks: Tasks to register
            edges: (predecessor_id, successor_id) pairs

        Returns:
            TaskGraph: Graph with all tasks and edges added

        Raises:
            GraphValidationError: If any task or edge is invalid
        """
        graph = cls()
        for task in tasks:
            graph.add_node(task)
        for source, target in edges:
            graph.add_edge(source, target)
        return graph

    def _check_mutable(self) -> None:
        if self._active_runs:
            raise GraphValidationError("Graph cannot be modified while it is executing")

    def add_node(self, task: Task) -> str:
        """Register a task.

        Args:
            task: Task to register

        Returns:
            Node ID used for edges and error reporting

        Raises:
            DuplicateNodeError: If a task with the same ID is registered
        """
        self._check_mutable()
        node_id = task.id
        if node_id in self.nodes:
            raise DuplicateNodeError(node_id)

        self.nodes[node_id] = task
        self.predecessors[node_id] = set()
        self.successors[node_id] = []
        return node_id

    def add_edge(self, predecessor_id: str, successor_id: str) -> Edge:
        """Declare that successor_id depends on predecessor_id.

        The graph is left unchanged if the edge is rejected.

        Args:
            predecessor_id: Node that must complete first
            successor_id: Node that waits for the predecessor

        Returns:
            The new (or already existing) Edge

        Raises:
            UnknownNodeError: If either node is not registered
            CycleDetectedError: If the edge would close a cycle
        """
        self._check_mutable()
        for node_id in (predecessor_id, successor_id):
            if node_id not in self.nodes:
                raise UnknownNodeError(node_id)

        if successor_id in self.successors[predecessor_id]:
            return Edge(source=predecessor_id, target=successor_id)

        path = self._find_path(successor_id, predecessor_id)
        if path is not None:
            raise CycleDetectedError(predecessor_id, successor_id, path)

        edge = Edge(source=predecessor_id, target=successor_id)
        self.edges.append(edge)
        self.predecessors[successor_id].add(predecessor_id)
        self.successors[predecessor_id].append(successor_id)
        return edge

    def chain(self, *tasks: Task) -> List[str]:
        """Connect tasks in sequence, registering any that are not yet added.

        Returns:
            Node IDs in chain order
        """
        node_ids = []
        for task in tasks:
            if task.id not in self.nodes:
                self.add_node(task)
            elif self.nodes[task.id] is not task:
                raise DuplicateNodeError(task.id)
            node_ids.append(task.id)

        for source, target in zip(node_ids, node_ids[1:]):
            self.add_edge(source, target)
        return node_ids

    def _find_path(self, start: str, goal: str) -> Optional[List[str]]:
        """DFS along successor edges; returns the path start..goal or None."""
        stack: List[Tuple[str, List[str]]] = [(start, [start])]
        visited: Set[str] = set()

        while stack:
            node_id, path = stack.pop()
            if node_id == goal:
                return path
            if node_id in visited:
                continue
            visited.add(node_id)
            for child_id in self.successors[node_id]:
                if child_id not in visited:
                    stack.append((child_id, path + [child_id]))

        return None

    def freeze(self) -> None:
        """Reject further mutation until a matching unfreeze() is called.

        Calls nest: overlapping runs each freeze the graph, and it becomes
        mutable again only once every one of them has unfrozen it.
        """
        self._active_runs += 1

    def unfreeze(self) -> None:
        if self._active_runs == 0:
            raise GraphValidationError("Graph is not frozen")
        self._active_runs -= 1

    @property
    def is_frozen(self) -> bool:
        return self._active_runs > 0

    @property
    def starting_nodes(self) -> List[str]:
        """Node IDs with no predecessors (immediately runnable)."""
        return [node_id for node_id, deps in self.predecessors.items() if not deps]

    @property
    def ending_nodes(self) -> List[str]:
        """Node IDs with no successors."""
        return [node_id for node_id, children in self.successors.items() if not children]

    def descendants(self, node_id: str) -> Set[str]:
        """Get every node reachable from node_id, excluding node_id itself."""
        if node_id not in self.nodes:
            raise UnknownNodeError(node_id)

        reachable: Set[str] = set()
        queue = list(self.successors[node_id])
        while queue:
            child_id = queue.pop(0)
            if child_id in reachable:
                continue
            reachable.add(child_id)
            queue.extend(self.successors[child_id])

        return reachable

    def get_execution_order(self) -> List[str]:
        """Compute a topological sort of the graph.

        Returns:
            List of node IDs in topologically sorted order

        Note:
            Siblings have no defined relative order. This is used for
            planning and visualization; the executor dispatches dynamically.
        """
        # Kahn's algorithm for topological sort
        in_degree = {node_id: len(deps) for node_id, deps in self.predecessors.items()}
        queue = [node_id for node_id, degree in in_degree.items() if degree == 0]
        result = []

        while queue:
            node_id = queue.pop(0)
            result.append(node_id)

            for child_id in self.successors[node_id]:
                in_degree[child_id] -= 1
                if in_degree[child_id] == 0:
                    queue.append(child_id)

        return result

    def get_task(self, node_id: str) -> Task:
        """Get a task by node ID.

        Raises:
            UnknownNodeError: If node does not exist
        """
        if node_id not in self.nodes:
            raise UnknownNodeError(node_id)
        return self.nodes[node_id]

    def has_node(self, node_id: str) -> bool:
        """Check if a node exists in the graph."""
        return node_id in self.nodes

    def get_predecessors(self, node_id: str) -> Set[str]:
        """Get predecessor node IDs for a given node."""
        return set(self.predecessors.get(node_id, set()))

    def get_successors(self, node_id: str) -> List[str]:
        """Get successor node IDs for a given node."""
        return list(self.successors.get(node_id, []))

    def to_mermaid(self, title: Optional[str] = None) -> str:
        """Render the graph as a Mermaid flowchart."""
        from taskgraph.utils.mermaid import generate_mermaid_code

        return generate_mermaid_code(self, title=title)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __repr__(self) -> str:
        return f"TaskGraph(nodes={len(self.nodes)}, edges={len(self.edges)})"
