"""The node graph: links between channels, cycle checks and ordered evaluation."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterable

from .imaging import ImageBuffer
from .nodes import Channel, Node

__all__ = ["Link", "Graph"]


@dataclass(eq=False)
class Link:
    """A connection from an output channel of one node to an input channel of another."""

    id: int
    from_node: Node
    to_node: Node
    from_channel: Channel
    to_channel: Channel

    def propagated_data(self) -> ImageBuffer | None:
        """The image currently held by the channel this link starts from."""
        return self.from_channel.data

    def detach(self) -> None:
        """Unhook the link from both channels and drop the data it delivered."""
        self.from_channel.attached_links.discard(self)
        self.to_channel.attached_links.discard(self)
        self.to_channel.data = None


class Graph:
    """Holds nodes and links and evaluates nodes in dependency order."""

    _ID_STEP = 5

    def __init__(self) -> None:
        self.nodes: list[Node] = []
        self.links: list[Link] = []
        self.changed = False
        self._last_id = 0

    def new_id(self) -> int:
        """Return a fresh id, leaving room for a node's channel ids after it."""
        self._last_id += self._ID_STEP
        return self._last_id

    def add_node(self, node: Node) -> None:
        self.nodes.append(node)

    def topo_sort(self) -> list[Node]:
        """Order the nodes so that every node follows the nodes feeding it."""
        indegree: dict[Node, int] = {node: 0 for node in self.nodes}
        dependents: dict[Node, list[Node]] = {}
        for link in self.links:
            dependents.setdefault(link.from_node, []).append(link.to_node)
            indegree[link.to_node] = indegree.get(link.to_node, 0) + 1

        queue = deque(node for node, degree in indegree.items() if degree == 0)
        ordered: list[Node] = []
        while queue:
            current = queue.popleft()
            ordered.append(current)
            for dependent in dependents.get(current, ()):
                indegree[dependent] -= 1
                if indegree[dependent] == 0:
                    queue.append(dependent)

        self.nodes = ordered
        return ordered

    def _has_path(self, start: Node, target: Node) -> bool:
        visited: set[Node] = set()
        stack = [start]
        while stack:
            node = stack.pop()
            if node is target:
                return True
            if node in visited:
                continue
            visited.add(node)
            stack.extend(link.to_node for link in self.links if link.from_node is node)
        return False

    def would_create_cycle(self, from_node: Node, to_node: Node) -> bool:
        """Whether linking from_node to to_node would close a cycle."""
        return self._has_path(to_node, from_node)

    def connect(self, from_channel_id: int, to_channel_id: int) -> bool:
        """Link two channels by id; return False if that would create a cycle."""
        source = self.node_from_channel_id(from_channel_id)
        target = self.node_from_channel_id(to_channel_id)
        if source is None:
            raise KeyError(f"no channel with id {from_channel_id}")
        if target is None:
            raise KeyError(f"no channel with id {to_channel_id}")
        from_node, from_channel = source
        to_node, to_channel = target
        if self.would_create_cycle(from_node, to_node):
            return False

        link = Link(self.new_id(), from_node, to_node, from_channel, to_channel)
        self.links.append(link)
        from_channel.attached_links.add(link)
        to_channel.attached_links.add(link)

        to_node.mark_dirty()
        self.changed = True
        return True

    def disconnect(self, link_id: int) -> None:
        self.delete_links([link_id])
        self.changed = True

    def _remove_links(self, doomed) -> None:
        kept: list[Link] = []
        for link in self.links:
            if doomed(link):
                link.to_node.mark_dirty()
                link.detach()
            else:
                kept.append(link)
        self.links = kept

    def delete_nodes(self, node_ids: Iterable[int]) -> None:
        """Remove the nodes with these ids together with every link touching them."""
        ids = set(node_ids)
        self._remove_links(lambda link: link.from_node.id in ids or link.to_node.id in ids)
        self.nodes = [node for node in self.nodes if node.id not in ids]

    def delete_links(self, link_ids: Iterable[int]) -> None:
        ids = set(link_ids)
        self._remove_links(lambda link: link.id in ids)

    def propagate_data(self, node: Node) -> None:
        """Copy each output's image to the input channels linked to it."""
        for channel in node.outputs:
            if channel.data is None:
                continue
            for link in self.links:
                if link.from_channel is channel:
                    link.to_channel.data = channel.data

    def evaluate(self) -> bool:
        """Re-run the graph if anything changed; return whether it ran."""
        if any(node.is_dirty for node in self.nodes):
            self.changed = True
        if not self.changed:
            return False

        for node in self.topo_sort():
            node.evaluate()
            self.propagate_data(node)
        self.changed = False
        return True

    def node_from_channel_id(self, channel_id: int) -> tuple[Node, Channel] | None:
        """The node owning the channel with this id, paired with the channel."""
        for node in self.nodes:
            for channel in (*node.inputs, *node.outputs):
                if channel.id == channel_id:
                    return node, channel
        return None

    def find_channel(self, channel_id: int) -> Channel | None:
        found = self.node_from_channel_id(channel_id)
        return found[1] if found is not None else None

    def node_from_id(self, node_id: int) -> Node | None:
        return next((node for node in self.nodes if node.id == node_id), None)

    def link_from_id(self, link_id: int) -> Link | None:
        return next((link for link in self.links if link.id == link_id), None)