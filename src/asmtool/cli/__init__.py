"""
asmtool Command-Line Interface
==============================

The `asmtool` command is a click group with one subcommand per task:

- **info**: list the functions and objects of a file
- **show**: print symbol bodies
- **copy**: copy symbols into a new, assemblable file
- **diff**: compare two versions of a file symbol by symbol
- **diff-symbol**: compare one symbol against another
- **callgraph**: write the call graph in DOT format
"""

__all__ = ["main"]
