"""
Central Logging and Console Utilities.

Output goes through the standard `logging` library rendered by `rich`.

- A custom ``SUCCESS`` level sits between INFO and WARNING.
- The Rich console is held by a proxy so the destination (stdout, a file, an
  in-memory buffer in tests) can be swapped with `set_console` while modules
  keep importing the same `console` object. Swapping also re-binds the logging
  handler.

Attributes:
    console (_ConsoleProxy): Stable reference to the active Rich Console.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

LOGGER_NAME = "baseline_codemod"
logger = logging.getLogger(LOGGER_NAME)

_THEME = Theme(
  {
    "logging.level.success": "green",
    "info": "dim cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "green",
    "path": "bold blue",
    "code": "bold magenta",
    "unsafe": "bold red",
    "caution": "yellow",
    "muted": "grey50",
  }
)


class _ConsoleProxy:
  """
  Forwards printing to a swappable `rich.console.Console` backend and keeps
  the package logger's RichHandler pointed at it.
  """

  def __init__(self) -> None:
    self._backend: Console = Console(theme=_THEME)
    self._configure_logging()

  def set_backend(self, new_console: Console) -> None:
    self._backend = new_console
    self._configure_logging()

  def reset(self) -> None:
    self._backend = Console(theme=_THEME)
    self._configure_logging()

  @property
  def backend(self) -> Console:
    return self._backend

  def _configure_logging(self) -> None:
    # Drop the previous RichHandler so logs follow the new backend.
    for handler in list(logger.handlers):
      if isinstance(handler, RichHandler):
        logger.removeHandler(handler)

    rich_handler = RichHandler(
      console=self._backend,
      show_time=False,
      show_path=False,
      markup=True,
      rich_tracebacks=True,
    )
    logger.setLevel(logging.INFO)
    logger.addHandler(rich_handler)
    logger.propagate = False

  def print(self, *args: Any, **kwargs: Any) -> None:
    self._backend.print(*args, **kwargs)

  def __getattr__(self, name: str) -> Any:
    return getattr(self._backend, name)


console = _ConsoleProxy()


def set_console(new_console: Console) -> None:
  """
  Injects a console instance for both printing and logging.

  Args:
      new_console: The Rich console to use (e.g. `Console(file=io.StringIO())`).
  """
  console.set_backend(new_console)


def reset_console() -> None:
  """Restores logging and printing to standard output."""
  console.reset()


def set_verbose(verbose: bool) -> None:
  """
  Enables DEBUG output (per-file and conflict details) when `verbose` is set.
  """
  logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def log_debug(msg: str) -> None:
  logger.debug(msg, extra={"markup": True})


def log_info(msg: str) -> None:
  """
  Logs an informational message.

  Args:
      msg: The message content. Can include rich markup like [bold].
  """
  logger.info(f"ℹ️  {msg}", extra={"markup": True})


def log_success(msg: str) -> None:
  logger.log(SUCCESS_LEVEL_NUM, f"✅ {msg}", extra={"markup": True})


def log_warning(msg: str) -> None:
  logger.warning(f"⚠️  {msg}", extra={"markup": True})


def log_error(msg: str) -> None:
  logger.error(f"❌ {msg}", extra={"markup": True})
