"""
Core Package.

Contains the codemod pipeline:
- Parsing (tree-sitter) and source offset handling
- Pattern Matcher
- Rewrite Rule Engine
- Per-document Engine and the Batch Runner
- File lifecycle state machine
"""
