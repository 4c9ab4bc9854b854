"""
Built-in Feature Catalogue.

Raw catalogue data in declaration order. Declaration order is significant: when
two features match exactly the same span, the one declared first wins.

Rewrite templates never reproduce a match of their own pattern:
- ``fetch`` output is a feature-detected call site (skipped on re-scan).
- ``string-replaceall`` and ``promise-allsettled`` change the callee shape.
- Textual rules carry a lookbehind on the text they insert (and on its
  escaped form where the template contains quotes).
"""

from typing import Any, Dict, List

_ALLSETTLED_POLYFILL = (
  "(Promise.allSettled || ((promises) => Promise.all(Array.from(promises, (p) => Promise.resolve(p).then("
  '(value) => ({ status: "fulfilled", value }), (reason) => ({ status: "rejected", reason }))))))'
)

_STYLE_KINDS = ["stylesheet", "markup"]

DEFAULT_FEATURES: List[Dict[str, Any]] = [
  # --- Script APIs (structural) ---
  {
    "id": "fetch",
    "title": "Fetch API",
    "patterns": [{"kind": "structural", "node": "call", "callee": "fetch", "skip_feature_detected": True}],
    "rewrite": {
      "template": '(typeof fetch !== "undefined" ? $& : Promise.reject(new Error("fetch not supported")))',
      "explanation": "Added fetch availability check",
    },
  },
  {
    "id": "string-replaceall",
    "title": "String.prototype.replaceAll",
    "patterns": [
      {
        "kind": "structural",
        "node": "call",
        "property_name": "replaceAll",
        "captures": ["receiver", "arg:0", "arg:1"],
      }
    ],
    "rewrite": {
      "template": '$1replace(new RegExp($2, "g"), $3)',
      "explanation": "Replaced replaceAll with global regex replace",
    },
  },
  {
    "id": "promise-allsettled",
    "title": "Promise.allSettled",
    "patterns": [
      {
        "kind": "structural",
        "node": "call",
        "object_name": "Promise",
        "property_name": "allSettled",
        "captures": ["arguments"],
      }
    ],
    "rewrite": {
      "template": _ALLSETTLED_POLYFILL + ".call(Promise, $1)",
      "explanation": "Added Promise.allSettled polyfill",
    },
  },
  {
    "id": "resizeobserver",
    "title": "ResizeObserver",
    "patterns": [{"kind": "structural", "node": "new", "constructor": "ResizeObserver"}],
  },
  {
    "id": "intersectionobserver",
    "title": "IntersectionObserver",
    "patterns": [{"kind": "structural", "node": "new", "constructor": "IntersectionObserver"}],
  },
  {
    "id": "abortcontroller",
    "title": "AbortController",
    "patterns": [{"kind": "structural", "node": "new", "constructor": "AbortController"}],
  },
  {
    "id": "array-at",
    "title": "Array.prototype.at",
    "patterns": [{"kind": "structural", "node": "call", "property_name": "at"}],
  },
  {
    "id": "clipboard",
    "title": "Async Clipboard API",
    "patterns": [{"kind": "structural", "node": "member", "object_name": "navigator", "property_name": "clipboard"}],
  },
  # --- Stylesheet features (also scanned inside script literals) ---
  {
    "id": "grid",
    "title": "CSS Grid",
    "source_kinds": _STYLE_KINDS,
    "scan_embedded": True,
    "patterns": [{"kind": "textual", "regex": r"(?<!/\* fallback \*/ )\bdisplay\s*:\s*grid\b(?!-)", "ignore_case": True}],
    "rewrite": {
      "template": "display: flex; /* fallback */ $&",
      "explanation": "Added flexbox fallback for CSS Grid",
    },
  },
  {
    "id": "container-queries",
    "title": "Container queries",
    "source_kinds": _STYLE_KINDS,
    "scan_embedded": True,
    "patterns": [
      {
        "kind": "textual",
        "regex": r"(?<!@supports \(container-type: inline-size\) \{ )@container\b[^{};]*\{(?:[^{}]|\{[^{}]*\})*\}",
      },
      {"kind": "textual", "regex": r"(?<![(\w-])container-type\s*:", "analysis_only": True},
    ],
    "rewrite": {
      "template": "@supports (container-type: inline-size) { $& }",
      "explanation": "Added feature query wrapper for container queries",
    },
  },
  {
    "id": "has-selector",
    "title": ":has() selector",
    "source_kinds": _STYLE_KINDS,
    "scan_embedded": True,
    "patterns": [{"kind": "textual", "regex": r":has\("}],
  },
  {
    "id": "aspect-ratio",
    "title": "aspect-ratio",
    "source_kinds": _STYLE_KINDS,
    "scan_embedded": True,
    "patterns": [{"kind": "textual", "regex": r"(?<![\w-])aspect-ratio\s*:", "ignore_case": True}],
  },
  # --- Markup features ---
  {
    "id": "dialog",
    "title": "<dialog> element",
    "source_kinds": ["markup"],
    "scan_embedded": True,
    "patterns": [{"kind": "textual", "regex": r"<dialog\b", "ignore_case": True}],
  },
  {
    "id": "lazy-loading",
    "title": "Lazy loading",
    "source_kinds": ["markup"],
    "scan_embedded": True,
    "patterns": [
      {
        "kind": "textual",
        "regex": r'(?<!data-lazy="true" )(?<!data-lazy=\\"true\\" )\bloading\s*=\s*["\']lazy["\']',
        "ignore_case": True,
      }
    ],
    "rewrite": {
      "template": 'data-lazy="true" $&',
      "explanation": "Added data attribute for lazy loading polyfill",
    },
  },
]
