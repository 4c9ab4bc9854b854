from .transform import handle_transform
from .analyze import handle_analyze
from .catalogue import handle_catalogue, handle_generate_rules

__all__ = [
  "handle_analyze",
  "handle_catalogue",
  "handle_generate_rules",
  "handle_transform",
]
