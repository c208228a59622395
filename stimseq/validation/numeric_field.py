from collections.abc import Mapping
from numbers import Real

from ..config import get_from_config
from .errors import ValidationError, join_path

valid_distributions = ["uniform", "normal", "loguniform", "categorical"]


def is_number(x):
    return isinstance(x, Real) and not isinstance(x, bool)


def is_number_list(x):
    return isinstance(x, (list, tuple)) and all(is_number(i) for i in x)


class NumericFieldValidator:
    """
    Checks numeric field specifications: bare scalars, ``{value}`` mappings,
    and distribution mappings with a ``dist`` key.
    Each ``validate*`` method returns ``(valid, errors)``.
    """

    @classmethod
    def validate(cls, field_value, field_path=""):
        if not isinstance(field_value, Mapping):
            if is_number(field_value):
                return True, []
            return False, [
                ValidationError(
                    field_path,
                    "type_mismatch",
                    "Numeric field must be a mapping or scalar number",
                    type(field_value).__name__,
                    "mapping or number",
                )
            ]

        if "value" in field_value and "dist" not in field_value:
            return cls.validate_scalar(field_value, field_path)

        if "dist" not in field_value:
            return False, [
                ValidationError(
                    field_path,
                    "required_field",
                    'Numeric field must have either "value" or "dist" field',
                )
            ]

        validators = {
            "uniform": cls.validate_uniform,
            "normal": cls.validate_normal,
            "loguniform": cls.validate_loguniform,
            "categorical": cls.validate_categorical,
        }
        dist = field_value["dist"]
        if not isinstance(dist, str) or dist not in validators:
            return False, [
                ValidationError(
                    join_path(field_path, "dist"),
                    "invalid_value",
                    f"Unknown distribution type: {dist}",
                    dist,
                    ", ".join(valid_distributions),
                )
            ]
        return validators[dist](field_value, field_path)

    @classmethod
    def validate_scalar(cls, field_value, field_path):
        errors = []
        if not is_number(field_value["value"]):
            errors.append(
                ValidationError(
                    join_path(field_path, "value"),
                    "type_mismatch",
                    "Value must be a scalar number",
                    type(field_value["value"]).__name__,
                    "scalar number",
                )
            )
        return not errors, errors

    @classmethod
    def _check_number(cls, field_value, field_path, name, dist_label, errors):
        if name not in field_value:
            errors.append(
                ValidationError(
                    field_path,
                    "required_field",
                    f'{dist_label} distribution requires "{name}" field',
                )
            )
            return False
        if not is_number(field_value[name]):
            errors.append(
                ValidationError(
                    join_path(field_path, name),
                    "type_mismatch",
                    f"{name} must be a scalar number",
                )
            )
            return False
        return True

    @classmethod
    def validate_uniform(cls, field_value, field_path):
        errors = []
        has_min = cls._check_number(field_value, field_path, "min", "Uniform", errors)
        has_max = cls._check_number(field_value, field_path, "max", "Uniform", errors)
        errors += cls.validate_scope(field_value, field_path)[1]

        if has_min and has_max and field_value["min"] >= field_value["max"]:
            errors.append(
                ValidationError(
                    field_path,
                    "constraint_violation",
                    "min must be less than max",
                    f"min={field_value['min']}, max={field_value['max']}",
                )
            )
        return not errors, errors

    @classmethod
    def validate_normal(cls, field_value, field_path):
        errors = []
        cls._check_number(field_value, field_path, "mean", "Normal", errors)
        if cls._check_number(field_value, field_path, "std", "Normal", errors):
            if field_value["std"] < 0:
                errors.append(
                    ValidationError(
                        join_path(field_path, "std"),
                        "range_violation",
                        "std must be non-negative",
                        field_value["std"],
                        ">= 0",
                    )
                )
        errors += cls.validate_scope(field_value, field_path)[1]

        clip_min = field_value.get("clip_min")
        clip_max = field_value.get("clip_max")
        if is_number(clip_min) and is_number(clip_max) and clip_min >= clip_max:
            errors.append(
                ValidationError(
                    field_path,
                    "constraint_violation",
                    "clip_min must be less than clip_max",
                )
            )
        return not errors, errors

    @classmethod
    def validate_loguniform(cls, field_value, field_path):
        errors = []
        bounds_ok = True
        for name in ["min", "max"]:
            if cls._check_number(field_value, field_path, name, "Log-uniform", errors):
                if field_value[name] <= 0:
                    bounds_ok = False
                    errors.append(
                        ValidationError(
                            join_path(field_path, name),
                            "range_violation",
                            f"Log-uniform {name} must be > 0",
                            field_value[name],
                            "> 0",
                        )
                    )
            else:
                bounds_ok = False
        errors += cls.validate_scope(field_value, field_path)[1]

        if bounds_ok and field_value["min"] >= field_value["max"]:
            errors.append(
                ValidationError(
                    field_path, "constraint_violation", "min must be less than max"
                )
            )
        return not errors, errors

    @classmethod
    def validate_categorical(cls, field_value, field_path):
        errors = []
        tolerance = get_from_config("probability_tolerance")

        categories = field_value.get("categories")
        probabilities = field_value.get("probabilities")

        if "categories" not in field_value:
            errors.append(
                ValidationError(
                    field_path,
                    "required_field",
                    'Categorical distribution requires "categories" field',
                )
            )
        elif not is_number_list(categories) or len(categories) < 2:
            errors.append(
                ValidationError(
                    join_path(field_path, "categories"),
                    "type_mismatch",
                    "categories must be numeric array with at least 2 elements",
                )
            )

        if "probabilities" not in field_value:
            errors.append(
                ValidationError(
                    field_path,
                    "required_field",
                    'Categorical distribution requires "probabilities" field',
                )
            )
        elif not is_number_list(probabilities):
            errors.append(
                ValidationError(
                    join_path(field_path, "probabilities"),
                    "type_mismatch",
                    "probabilities must be numeric array",
                )
            )
        else:
            prob_sum = sum(probabilities)
            if abs(prob_sum - 1.0) > tolerance:
                errors.append(
                    ValidationError(
                        join_path(field_path, "probabilities"),
                        "constraint_violation",
                        f"Probabilities must sum to 1.0 (±{tolerance:g})",
                        prob_sum,
                        1.0,
                    )
                )
            if any(p < 0 or p > 1 for p in probabilities):
                errors.append(
                    ValidationError(
                        join_path(field_path, "probabilities"),
                        "range_violation",
                        "All probabilities must be in range [0, 1]",
                    )
                )

        if (
            isinstance(categories, (list, tuple))
            and isinstance(probabilities, (list, tuple))
            and len(categories) != len(probabilities)
        ):
            errors.append(
                ValidationError(
                    field_path,
                    "constraint_violation",
                    "categories and probabilities must have same length",
                )
            )

        errors += cls.validate_scope(field_value, field_path)[1]
        return not errors, errors

    @classmethod
    def validate_scope(cls, field_value, field_path):
        from ..sampling.scope import valid_scopes

        errors = []
        if "scope" not in field_value:
            errors.append(
                ValidationError(
                    field_path, "required_field", 'Distribution requires "scope" field'
                )
            )
        elif not isinstance(field_value["scope"], str):
            errors.append(
                ValidationError(
                    join_path(field_path, "scope"),
                    "type_mismatch",
                    "scope must be a string",
                )
            )
        elif field_value["scope"] not in valid_scopes:
            errors.append(
                ValidationError(
                    join_path(field_path, "scope"),
                    "invalid_value",
                    f"Invalid scope: {field_value['scope']}",
                    field_value["scope"],
                    ", ".join(valid_scopes),
                )
            )
        return not errors, errors
