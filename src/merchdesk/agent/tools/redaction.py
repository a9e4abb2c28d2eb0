"""
Tool Result Redaction.

Removes non-shareable fields (pre-markup cost figures and the like) from raw
handler output and renders what remains as a bounded text summary that is
safe to inject into the prompt.

Security Principle: anything placed in the prompt is visible to the model and
can leak into a reply, so redaction happens here, once, before the summary
is built.
"""

from __future__ import annotations

import dataclasses
import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from pydantic import BaseModel

DEFAULT_DENYLIST: tuple[str, ...] = (
    "base_price",
    "beforeVAT",
    "cost_price",
    "unit_cost",
    "supplier_price",
    "markup",
    "margin",
)

TRUNCATION_MARKER = "... [TRUNCATED]"

_SEPARATORS = re.compile(r"[\s_\-]+")


def _normalize_key(key: Any) -> str:
    return _SEPARATORS.sub("", str(key)).lower()


@dataclass
class RedactionResult:
    """Result of redacting one handler output.

    Attributes:
        summary: Redacted, bounded text (safe to inject)
        redaction_count: Number of fields removed
        original_length: Length of the rendered text before truncation
        summary_length: Length of the summary
        was_truncated: True if the text was cut at max_result_chars
    """

    summary: str
    redaction_count: int
    original_length: int
    summary_length: int
    was_truncated: bool = False

    @property
    def was_redacted(self) -> bool:
        return self.redaction_count > 0


class ResultRedactor:
    """Strips denylisted fields and builds the injected summary.

    Field matching ignores case and separators, so ``beforeVAT``,
    ``before_vat`` and ``Before-VAT`` are all removed. Nested dicts and lists
    are walked recursively. Dataclasses and pydantic models are
    converted to dicts first so their fields are checked too.

    Usage:
        redactor = ResultRedactor(max_result_chars=2000)
        result = redactor.redact({"total": 500, "base_price": 320})
        # result.summary == '{"total": 500}'
    """

    def __init__(
        self,
        denylist: Optional[Iterable[str]] = None,
        max_result_chars: int = 2000,
    ):
        """Initialize the redactor.

        Args:
            denylist: Field names to remove (defaults to DEFAULT_DENYLIST)
            max_result_chars: Maximum length of the summary
        """
        self.denylist = tuple(denylist) if denylist is not None else DEFAULT_DENYLIST
        self.max_result_chars = max_result_chars
        self._denied = {_normalize_key(name) for name in self.denylist}

    def is_denied(self, key: Any) -> bool:
        """Check whether a field name is on the deny-list."""
        return _normalize_key(key) in self._denied

    def strip(self, data: Any) -> tuple[Any, int]:
        """Return a copy of ``data`` without denylisted fields.

        Returns:
            Tuple of (stripped copy, number of fields removed)
        """
        if isinstance(data, BaseModel):
            data = data.model_dump()
        elif dataclasses.is_dataclass(data) and not isinstance(data, type):
            data = dataclasses.asdict(data)

        if isinstance(data, dict):
            cleaned: dict[Any, Any] = {}
            removed = 0
            for key, value in data.items():
                if self.is_denied(key):
                    removed += 1
                    continue
                cleaned[key], nested = self.strip(value)
                removed += nested
            return cleaned, removed

        if isinstance(data, (list, tuple)):
            items = []
            removed = 0
            for item in data:
                cleaned_item, nested = self.strip(item)
                items.append(cleaned_item)
                removed += nested
            return items, removed

        return data, 0

    def redact(self, data: Any) -> RedactionResult:
        """Redact handler output and render the bounded summary.

        Strings are passed through unless they hold a JSON object or array,
        which is decoded and redacted like any other structure.

        Args:
            data: Raw handler output

        Returns:
            RedactionResult with the injected summary
        """
        if isinstance(data, str):
            stripped = data.strip()
            if stripped[:1] in ("{", "["):
                try:
                    data = json.loads(stripped)
                except ValueError:
                    pass

        cleaned, removed = self.strip(data)

        if isinstance(cleaned, str):
            text = cleaned
        else:
            text = json.dumps(cleaned, default=str, ensure_ascii=False)

        original_length = len(text)
        truncated = original_length > self.max_result_chars
        if truncated:
            text = text[: self.max_result_chars] + TRUNCATION_MARKER

        return RedactionResult(
            summary=text,
            redaction_count=removed,
            original_length=original_length,
            summary_length=len(text),
            was_truncated=truncated,
        )
