"""Inspection and visualization of compiled Loom programs."""
from __future__ import annotations

from pathlib import Path

try:
    import networkx as nx
except ModuleNotFoundError:  # pragma: no cover
    nx = None

try:
    import matplotlib.pyplot as plt
except ModuleNotFoundError:  # pragma: no cover
    plt = None

try:
    import pydot
except ModuleNotFoundError:  # pragma: no cover
    pydot = None

from .core import strip_padding

SIDE_COLORS = {
    "root": "#B0BEC5",
    "true": "#8BC34A",
    "false": "#FF7043",
}

LABEL_OPS = 6


def _graph_of(obj):
    return getattr(obj, "graph", obj)


def _side(graph, node):
    if node.parent is None:
        return "root"
    true_side, _false_side = graph.nodes[node.parent].children
    return "true" if node.index == true_side else "false"


def _block_label(node, limit=LABEL_OPS):
    ops = [str(instr) for instr in strip_padding(node.block)]
    if len(ops) > limit:
        ops = ops[:limit] + [f"… +{len(ops) - limit}"]
    return " ".join(ops) or "(empty)"


def format_path(instructions, include_padding=False):
    """Render a path as assembly-like text, collapsing runs of padding."""

    parts = []
    run = 0
    for instr in instructions:
        if instr.padding:
            run += 1
            continue
        if run:
            if include_padding:
                parts.append(f"noop×{run}")
            run = 0
        parts.append(str(instr))
    if run and include_padding:
        parts.append(f"noop×{run}")
    return " ".join(parts)


def summarize_program(program):
    """Return headline numbers about a compiled program."""

    graph = program.graph
    paths = graph.paths()
    cycles = [len(path) for path in paths]
    padding = [sum(1 for instr in path if instr.padding) for path in paths]
    return {
        "root": program.root_hex,
        "hash": program.hash_name,
        "paths": program.leaf_count,
        "branches": graph.branch_count,
        "depth": graph.depth,
        "nodes": len(graph.nodes),
        "cycles": cycles,
        "padding": padding,
        "tree_height": program.tree.height,
    }


def print_graph(obj, indent=0):
    """Print the execution graph as an indented tree."""

    graph = _graph_of(obj)
    leaf_positions = {index: pos for pos, index in enumerate(graph.leaves())}
    stack = [(graph.root, indent)]
    while stack:
        index, level = stack.pop()
        node = graph.nodes[index]
        pad = "  " * level
        side = _side(graph, node)
        if node.is_leaf:
            print(f"{pad}[{side}] leaf #{leaf_positions[index]}: {_block_label(node)}")
        else:
            print(f"{pad}[{side}] {_block_label(node)}")
            true_side, false_side = node.children
            stack.append((false_side, level + 1))
            stack.append((true_side, level + 1))


def graph_to_networkx(obj):
    """Convert an execution graph into a ``networkx.DiGraph``."""

    if nx is None:
        raise RuntimeError("Graph conversion requires networkx to be installed")

    graph = _graph_of(obj)
    leaf_positions = {index: pos for pos, index in enumerate(graph.leaves())}
    digraph = nx.DiGraph()
    for node in graph.nodes:
        digraph.add_node(
            node.index,
            label=_block_label(node),
            length=len(node.block),
            side=_side(graph, node),
            leaf=leaf_positions.get(node.index),
        )
        if node.children:
            true_side, false_side = node.children
            digraph.add_edge(node.index, true_side, side="true")
            digraph.add_edge(node.index, false_side, side="false")
    return digraph


def _tree_layout(graph):
    positions = {}
    leaves = graph.leaves()
    for pos, index in enumerate(leaves):
        positions[index] = (float(pos), -float(graph.nodes[index].depth))
    for node in reversed(graph.nodes):
        if node.children:
            xs = [positions[child][0] for child in node.children]
            positions[node.index] = (sum(xs) / 2.0, -float(node.depth))
    return positions


def visualize_graph(obj, title="Loom execution graph"):  # pragma: no cover
    """Render the execution graph with matplotlib."""

    if nx is None or plt is None:
        raise RuntimeError("Visualization requires networkx and matplotlib to be installed")

    graph = _graph_of(obj)
    digraph = graph_to_networkx(graph)
    positions = _tree_layout(graph)
    colors = [SIDE_COLORS[digraph.nodes[n]["side"]] for n in digraph.nodes]
    labels = {n: digraph.nodes[n]["label"] for n in digraph.nodes}

    plt.figure(figsize=(max(6, len(graph.leaves()) * 1.6), 2 + graph.depth * 1.5))
    nx.draw_networkx_nodes(digraph, positions, node_color=colors, node_size=900)
    nx.draw_networkx_labels(digraph, positions, labels=labels, font_size=7)
    true_edges = [(u, v) for u, v, d in digraph.edges(data=True) if d["side"] == "true"]
    false_edges = [(u, v) for u, v, d in digraph.edges(data=True) if d["side"] == "false"]
    nx.draw_networkx_edges(digraph, positions, edgelist=true_edges, arrows=True)
    nx.draw_networkx_edges(digraph, positions, edgelist=false_edges, style="dashed", arrows=True)
    plt.title(title)
    plt.axis("off")
    plt.tight_layout()
    plt.show()


def export_graphviz(obj, output_path):  # pragma: no cover
    """Export the execution graph as a Graphviz SVG."""

    if pydot is None:
        raise RuntimeError("Graphviz export requires the optional pydot dependency")

    graph = _graph_of(obj)
    leaf_positions = {index: pos for pos, index in enumerate(graph.leaves())}
    dot = pydot.Dot(
        "loom_paths",
        graph_type="digraph",
        rankdir="TB",
        fontname="Helvetica",
    )
    for node in graph.nodes:
        label = _block_label(node)
        if node.is_leaf:
            label = f"#{leaf_positions[node.index]}\\n{label}"
        dot.add_node(
            pydot.Node(
                str(node.index),
                label=label,
                shape="box",
                style="filled",
                fillcolor=SIDE_COLORS[_side(graph, node)],
                fontname="Helvetica",
            )
        )
        if node.children:
            true_side, false_side = node.children
            dot.add_edge(pydot.Edge(str(node.index), str(true_side), label="true"))
            dot.add_edge(
                pydot.Edge(str(node.index), str(false_side), label="false", style="dashed")
            )

    output_path = Path(output_path)
    if output_path.parent and not output_path.parent.exists():
        output_path.parent.mkdir(parents=True, exist_ok=True)

    dot.write_svg(str(output_path))
    print(f"  ✓ Graphviz visualization exported → {output_path}")


__all__ = [
    "export_graphviz",
    "format_path",
    "graph_to_networkx",
    "print_graph",
    "summarize_program",
    "visualize_graph",
]
