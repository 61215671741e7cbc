from __future__ import annotations

import math
from typing import Dict, Optional, Tuple

from walletgraph.core.models import Graph, LayoutConfig


class LayoutEngine:
    """
    Force-directed layout: pairwise repulsion, spring attraction along edges,
    gravity toward the canvas center, damped velocity.

    No randomness anywhere, so the same graph and constants always give the
    same positions. Nodes are updated in graph order within a step and later
    nodes see the already-moved earlier ones.
    """

    def __init__(self, config: LayoutConfig = LayoutConfig()) -> None:
        self.config = config

    def simulate(self, graph: Graph, iterations: Optional[int] = None) -> Dict[str, Tuple[float, float]]:
        cfg = self.config
        steps = cfg.iterations if iterations is None else int(iterations)
        nodes = list(graph.nodes.values())
        if not nodes:
            return {}

        cx, cy = cfg.width / 2.0, cfg.height / 2.0
        n = len(nodes)
        for i, node in enumerate(nodes):
            angle = (i / n) * math.pi * 2
            node.x = cx + cfg.radius * math.cos(angle)
            node.y = cy + cfg.radius * math.sin(angle)
            node.vx = 0.0
            node.vy = 0.0

        neighbors = graph.neighbors()

        for _ in range(max(0, steps)):
            for a in nodes:
                fx = fy = 0.0

                for b in nodes:
                    if b is a:
                        continue
                    dx = a.x - b.x
                    dy = a.y - b.y
                    dist = math.hypot(dx, dy) or 1.0
                    force = cfg.k_rep / (dist * dist)
                    fx += (dx / dist) * force
                    fy += (dy / dist) * force

                for addr in neighbors[a.address]:
                    other = graph.nodes[addr]
                    fx += (other.x - a.x) * cfg.k_attr
                    fy += (other.y - a.y) * cfg.k_attr

                fx += (cx - a.x) * cfg.k_center
                fy += (cy - a.y) * cfg.k_center

                a.vx = (a.vx + fx) * cfg.damping
                a.vy = (a.vy + fy) * cfg.damping
                a.x += a.vx
                a.y += a.vy

        return {node.address: (node.x, node.y) for node in nodes}
