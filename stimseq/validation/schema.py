import json
from collections.abc import Mapping
from pathlib import Path

import importlib_resources
import jsonschema
from jsonschema import Draft202012Validator

from ..config import get_from_config
from ..error import SchemaLoadError
from ..utils import get_logger
from .custom import CustomValidators
from .errors import ValidationError, join_path
from .numeric_field import NumericFieldValidator

logger = get_logger()

SCHEMA_ID_PREFIX = "https://stimseq.org/schemas/v1/"
SCHEMA_SUFFIX = ".schema.json"

keyword_error_types = {
    "required": "required_field",
    "type": "type_mismatch",
    "minimum": "range_violation",
    "maximum": "range_violation",
    "exclusiveMinimum": "range_violation",
    "exclusiveMaximum": "range_violation",
    "enum": "enum_mismatch",
    "const": "const_mismatch",
    "pattern": "pattern_mismatch",
    "minItems": "array_size",
    "maxItems": "array_size",
    "additionalProperties": "unexpected_field",
}


def _issues_to_schema_errors(keyword, issues):
    for issue in issues:
        yield jsonschema.ValidationError(
            issue.message,
            validator=keyword,
            validator_value=issue.error_type,
            instance=issue.value,
            path=[part for part in issue.field_path.split(".") if part],
        )


def numeric_field_keyword(validator, enabled, instance, schema):
    if not enabled:
        return
    _, issues = NumericFieldValidator.validate(instance, "")
    yield from _issues_to_schema_errors("x-numeric-field", issues)


def probabilities_sum_keyword(validator, options, instance, schema):
    if not validator.is_type(instance, "array"):
        return
    if isinstance(options, Mapping):
        key = options.get("property")
        tolerance = options.get("tolerance")
    else:
        key = None
        tolerance = options
    if key is not None:
        instance = [item.get(key, 0) for item in instance if isinstance(item, Mapping)]
    _, issues = CustomValidators.validate_probabilities_sum(instance, "", tolerance)
    yield from _issues_to_schema_errors("x-probabilities-sum", issues)


def unique_labels_keyword(validator, key, instance, schema):
    if not key or not validator.is_type(instance, "array"):
        return
    if isinstance(key, str):
        instance = [item.get(key) for item in instance if isinstance(item, Mapping)]
    _, issues = CustomValidators.validate_unique_labels(instance, "")
    yield from _issues_to_schema_errors("x-unique-labels", issues)


custom_keywords = {
    "x-numeric-field": numeric_field_keyword,
    "x-probabilities-sum": probabilities_sum_keyword,
    "x-unique-labels": unique_labels_keyword,
}

StimulusSchemaValidator = jsonschema.validators.extend(
    Draft202012Validator, custom_keywords
)


def convert_schema_error(error) -> ValidationError:
    field_path = join_path(*error.absolute_path)

    if error.validator in custom_keywords:
        error_type = error.validator_value
    elif error.validator == "oneOf":
        # jsonschema attaches the per-branch failures as context
        # only when no branch matched.
        error_type = "one_of_none_valid" if error.context else "one_of_multiple_valid"
    else:
        error_type = keyword_error_types.get(error.validator, error.validator)

    expected = None
    if error.validator not in custom_keywords and error.validator not in ["required", "oneOf"]:
        expected = error.validator_value

    return ValidationError(
        field_path=field_path,
        error_type=error_type,
        message=error.message,
        value=None if error.validator in ["required", "oneOf"] else _simple_value(error.instance),
        expected=_simple_value(expected),
    )


def _simple_value(x):
    if isinstance(x, (Mapping, list)):
        return None
    return x


class SchemaLoader:
    """
    Loads JSON schema documents from a directory, caching each document
    after its first use.

    Parameters
    ----------

    base_path :
        Directory containing the schema documents. Defaults to the
        ``schema_dir`` configuration value, falling back to the schemas
        bundled with this package.
    """

    def __init__(self, base_path=None):
        if base_path is None:
            base_path = get_from_config("schema_dir")

        if base_path is None:
            self.base_path = importlib_resources.files("stimseq") / "schemas"
        else:
            self.base_path = Path(base_path)
            if not self.base_path.is_dir():
                raise SchemaLoadError(f"Schema directory does not exist: {base_path}")

        self.schema_cache = {}

    def load(self, schema_path: str) -> dict:
        if schema_path in self.schema_cache:
            return self.schema_cache[schema_path]

        full_path = self.base_path.joinpath(schema_path)
        if not full_path.is_file():
            raise SchemaLoadError(f"Schema file not found: {full_path}")

        try:
            schema = json.loads(full_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as err:
            raise SchemaLoadError(f"Failed to parse schema {schema_path}: {err}") from err

        try:
            StimulusSchemaValidator.check_schema(schema)
        except jsonschema.SchemaError as err:
            raise SchemaLoadError(f"Invalid schema {schema_path}: {err.message}") from err

        self.schema_cache[schema_path] = schema
        return schema

    def load_by_id(self, schema_id: str) -> dict:
        if not schema_id.startswith(SCHEMA_ID_PREFIX):
            raise SchemaLoadError(f"Invalid schema ID format: {schema_id}")
        relative_path = schema_id[len(SCHEMA_ID_PREFIX):]
        return self.load(relative_path + SCHEMA_SUFFIX)

    def clear_cache(self):
        self.schema_cache = {}

    def get_all_cached(self):
        return list(self.schema_cache.items())


class Validator:
    """
    Applies schema documents (plus the custom ``x-*`` rules) to stimulus
    definitions and trial plans. Violations are aggregated:
    every method returns ``(valid, errors)`` with the full list of
    :class:`~stimseq.validation.errors.ValidationError` records.
    """

    def __init__(self, schema_loader: SchemaLoader = None):
        if schema_loader is None:
            schema_loader = SchemaLoader()
        if not isinstance(schema_loader, SchemaLoader):
            raise TypeError("Must provide a SchemaLoader instance.")
        self.schema_loader = schema_loader

    def validate(self, data, schema_path: str):
        try:
            schema = self.schema_loader.load(schema_path)
        except SchemaLoadError as err:
            return False, [ValidationError("", "schema_load_error", str(err))]
        return self.validate_against(data, schema)

    def validate_against(self, data, schema: dict):
        validator = StimulusSchemaValidator(schema)
        errors = [convert_schema_error(err) for err in validator.iter_errors(data)]
        return not errors, errors

    def validate_stimulus(self, definition, field_path=""):
        if not isinstance(definition, Mapping) or not isinstance(definition.get("type"), str):
            return False, [
                ValidationError(
                    join_path(field_path, "type"),
                    "required_field",
                    "Stimulus definition must declare its type",
                )
            ]
        valid, errors = self.validate(
            definition, f"stimuli/{definition['type']}{SCHEMA_SUFFIX}"
        )
        for err in errors:
            err.field_path = join_path(field_path, err.field_path)
        return valid, errors

    def validate_stimulus_library(self, stimulus_library):
        errors = []
        for stimulus_ref, definition in stimulus_library.items():
            errors += self.validate_stimulus(definition, stimulus_ref)[1]
        if errors:
            logger.warning(
                "Stimulus library failed validation with %i error(s).", len(errors)
            )
        return not errors, errors

    def validate_trial_plan(self, trial_plan, stimulus_library=None):
        valid, errors = self.validate(trial_plan, f"trial_plan{SCHEMA_SUFFIX}")
        if valid:
            errors += CustomValidators.validate_timing_feasibility(
                trial_plan, stimulus_library=stimulus_library
            )[1]
        return not errors, errors
