"""
CLI Subpackage.

Contains the application entry-point and command handlers for the command-line interface.

Modules:
    - ``__main__``: The argparse definition and dispatcher.
    - ``commands``: Top-level facade for command handlers.
    - ``handlers/*``: Implementation modules for specific CLI actions (transform, analyze, catalogue).
"""
