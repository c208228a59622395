from dataclasses import dataclass
from typing import Any, List, Optional


@dataclass
class ValidationError:
    """
    One violated validation rule.

    Validation never stops at the first problem; validators return lists
    of these records so that everything wrong with a document can be
    reported at once (see :func:`format_errors`).

    Attributes
    ----------

    field_path:
        Dot-notation path to the offending field, e.g. ``"tokens.0.base_probability"``.

    error_type:
        Category of the violation, e.g. ``"required_field"``, ``"type_mismatch"``,
        ``"range_violation"``, ``"constraint_violation"``.

    message:
        Human-readable description.

    value:
        The offending value, if relevant.

    expected:
        The expected value or constraint, if relevant.
    """

    field_path: str
    error_type: str
    message: str
    value: Optional[Any] = None
    expected: Optional[Any] = None

    def to_string(self):
        string = f"[{self.error_type}] {self.field_path}: {self.message}"
        if self.value is not None:
            if isinstance(self.value, str):
                string += f' (got: "{self.value}")'
            else:
                string += f" (got: {self.value!r})"
        if self.expected is not None:
            string += f" (expected: {self.expected})"
        return string

    def __str__(self):
        return self.to_string()


def format_errors(errors: List[ValidationError]):
    if not errors:
        return "No validation errors"

    lines = [f"Found {len(errors)} validation error(s):"]
    for i, err in enumerate(errors):
        lines.append(f"  {i + 1}. {err.to_string()}")
    return "\n".join(lines)


def join_path(*parts):
    return ".".join(str(part) for part in parts if part != "")
