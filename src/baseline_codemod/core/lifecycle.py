"""
File Lifecycle State Machine.

Each file in transform mode moves through::

    Unprocessed -> Parsed -> Matched -> Classified -> Rewritten -> Serialized -> (Persisted | Reported)

`ParseError` is a terminal failure reachable only from `Unprocessed`.
`Persisted` (apply mode, changed) and `Reported` (dry-run or unchanged) are
the successful terminal states.
"""

from typing import Dict, List, Set

from baseline_codemod.enums import FileState
from baseline_codemod.errors import LifecycleError

_TRANSITIONS: Dict[FileState, Set[FileState]] = {
  FileState.UNPROCESSED: {FileState.PARSED, FileState.PARSE_ERROR},
  FileState.PARSED: {FileState.MATCHED},
  FileState.MATCHED: {FileState.CLASSIFIED},
  FileState.CLASSIFIED: {FileState.REWRITTEN},
  FileState.REWRITTEN: {FileState.SERIALIZED},
  FileState.SERIALIZED: {FileState.PERSISTED, FileState.REPORTED},
}

TERMINAL_STATES = {FileState.PERSISTED, FileState.REPORTED, FileState.PARSE_ERROR}


class FileLifecycle:
  """
  Records state transitions into a history list and rejects illegal ones.

  The history list is shared with the owning `TransformResult`, so the result
  always reflects the latest state.
  """

  def __init__(self, history: List[FileState]):
    if not history:
      history.append(FileState.UNPROCESSED)
    self.history = history

  @property
  def state(self) -> FileState:
    return self.history[-1]

  @property
  def is_terminal(self) -> bool:
    return self.state in TERMINAL_STATES

  def can_advance(self, target: FileState) -> bool:
    return target in _TRANSITIONS.get(self.state, set())

  def advance(self, target: FileState) -> None:
    """
    Moves to `target`.

    Raises:
        LifecycleError: If the transition is not allowed from the current state.
    """
    if not self.can_advance(target):
      raise LifecycleError(f"Illegal transition {self.state.value} -> {target.value}")
    self.history.append(target)
