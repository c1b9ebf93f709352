"""
Call Graph Extraction
=====================

Builds the static call graph of an assembly file from its direct `call`
instructions and renders it in Graphviz DOT format.

Example
-------
>>> graph = build_callgraph(asm_file, roots=["main"], max_depth=2)
>>> print(format_dot(graph))
digraph {
	rankdir=LR;
	"main" -> { "helper", "init" };
	...
}
"""

from collections import deque
from typing import Iterable, Optional
import difflib
import logging

from asmtool.assembly.asmfile import AsmFile
from asmtool.assembly.objects import ExtractFlags
from asmtool.errors import CallGraphError

logger = logging.getLogger(__name__)


CallGraph = dict[str, set[str]]


def function_callees(asm_file: AsmFile, name: str,
                     include_external: bool = False) -> set[str]:
    """
    Functions called directly by `name`.

    Callees that are not functions of the file (library calls, calls
    through the PLT to other units) are left out unless
    `include_external` is set.
    """
    obj = asm_file.get_function(name, ExtractFlags.STRIP_DEBUG)
    if obj is None:
        return set()
    return {
        callee for callee in obj.calls()
        if include_external or asm_file.has_function(callee)
    }


def build_callgraph(
    asm_file: AsmFile,
    roots: Optional[Iterable[str]] = None,
    max_depth: Optional[int] = None,
    include_external: bool = False,
) -> CallGraph:
    """
    Build the call graph of a file.

    Without roots, every function of the file is a node. With roots, the
    graph is explored breadth first from the roots; a function found at
    depth d has its calls listed only while d < max_depth (roots are at
    depth 0).

    Args:
        asm_file: Loaded assembly file
        roots: Functions to start from (all functions when None)
        max_depth: Number of call levels to follow from the roots
        include_external: Keep calls to functions the file does not define

    Returns:
        Mapping of caller name to the set of callee names

    Raises:
        CallGraphError: If a root is not a function of the file or
                        max_depth is less than 1
    """
    if max_depth is not None and max_depth < 1:
        raise CallGraphError(f"max depth must be at least 1, got {max_depth}")

    functions = [s.name for s in asm_file.iter_symbols() if asm_file.has_function(s.name)]

    if roots is None:
        return {
            name: function_callees(asm_file, name, include_external)
            for name in functions
        }

    roots = list(roots)
    for root in roots:
        if not asm_file.has_function(root):
            similar = difflib.get_close_matches(root, functions, n=3)
            hint = f"did you mean {', '.join(similar)}?" if similar else None
            raise CallGraphError(f"unknown function: {root}", hint=hint)

    graph: CallGraph = {}
    queue = deque((root, 0) for root in roots)
    seen = set(roots)

    while queue:
        name, depth = queue.popleft()
        if max_depth is not None and depth >= max_depth:
            continue

        callees = function_callees(asm_file, name, include_external)
        graph[name] = callees
        logger.debug(f"{name}: {len(callees)} callees at depth {depth}")

        for callee in sorted(callees):
            if callee not in seen and asm_file.has_function(callee):
                seen.add(callee)
                queue.append((callee, depth + 1))

    return graph


def format_dot(graph: CallGraph) -> str:
    """Render a call graph as a DOT digraph, nodes sorted by name."""
    lines = ["digraph {", "\trankdir=LR;"]
    for caller in sorted(graph):
        callees = sorted(graph[caller])
        if callees:
            targets = ", ".join(f'"{callee}"' for callee in callees)
            lines.append(f'\t"{caller}" -> {{ {targets} }};')
        else:
            lines.append(f'\t"{caller}";')
    lines.append("}")
    return "\n".join(lines) + "\n"
