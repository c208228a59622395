from collections import Counter
from collections.abc import Mapping

from ..config import get_from_config
from .errors import ValidationError, join_path
from .numeric_field import is_number, is_number_list


class CustomValidators:
    """
    Domain-specific rules that plain JSON Schema cannot express.
    Each method returns ``(valid, errors)``.
    """

    @staticmethod
    def validate_probabilities_sum(probabilities, field_path, tolerance=None):
        if tolerance is None:
            tolerance = get_from_config("probability_tolerance")

        if not is_number_list(probabilities):
            return False, [
                ValidationError(
                    field_path, "type_mismatch", "Probabilities must be numeric array"
                )
            ]

        errors = []
        prob_sum = sum(probabilities)
        if abs(prob_sum - 1.0) > tolerance:
            errors.append(
                ValidationError(
                    field_path,
                    "probability_sum",
                    f"Probabilities must sum to 1.0 (±{tolerance:g})",
                    prob_sum,
                    1.0,
                )
            )
        if any(p < 0 or p > 1 for p in probabilities):
            errors.append(
                ValidationError(
                    field_path,
                    "probability_range",
                    "All probabilities must be in range [0, 1]",
                )
            )
        return not errors, errors

    @staticmethod
    def validate_unique_labels(labels, field_path):
        if not isinstance(labels, (list, tuple)) or not all(
            isinstance(label, str) for label in labels
        ):
            return False, [
                ValidationError(
                    field_path, "type_mismatch", "Labels must be a list of strings"
                )
            ]

        counts = Counter(labels)
        duplicates = [
            f"{label} (appears {count} times)"
            for label, count in counts.items()
            if count > 1
        ]
        if duplicates:
            return False, [
                ValidationError(
                    field_path,
                    "duplicate_labels",
                    f"Duplicate labels found: {', '.join(duplicates)}",
                )
            ]
        return True, []

    @staticmethod
    def validate_timing_feasibility(trial_plan, field_path="", stimulus_library=None):
        """
        Checks that a trial plan's timing can be realized.

        * Within each trial, no element may start before the previous element ends.
        * If the plan declares ``ramp_ms`` and ``duration_ms``, two ramps plus the
          duration plus the refractory period must fit within the ITI.
        * If a ``stimulus_library`` is supplied, each stimulus's envelope ramps must fit
          within the element's scheduled duration.
        """
        errors = []

        for i, trial in enumerate(trial_plan.get("trials", [])):
            elements = trial.get("elements") or []
            previous_end = None
            for j, element in enumerate(elements):
                element_path = join_path(field_path, f"trials.{i}.elements.{j}")
                onset = element.get("scheduled_onset_ms")
                duration = element.get("duration_ms")
                if not (is_number(onset) and is_number(duration)):
                    continue
                if previous_end is not None and onset < previous_end:
                    errors.append(
                        ValidationError(
                            element_path,
                            "timing_overlap",
                            f"Element starts at {onset:g} ms, before the previous "
                            f"element ends ({previous_end:g} ms)",
                            onset,
                            f">= {previous_end:g}",
                        )
                    )
                previous_end = max(previous_end or 0, onset + duration)

                if stimulus_library is not None:
                    errors += _check_ramps_fit(element, stimulus_library, element_path)

        required = ["ramp_ms", "duration_ms", "iti_ms"]
        if all(is_number(trial_plan.get(key)) for key in required):
            total_time = (
                trial_plan["ramp_ms"] * 2
                + trial_plan["duration_ms"]
                + trial_plan.get("refractory_ms", 0)
            )
            available_time = trial_plan["iti_ms"]
            if total_time > available_time:
                errors.append(
                    ValidationError(
                        field_path or "iti_ms",
                        "timing_infeasible",
                        f"Total time ({total_time:g} ms) exceeds available ITI "
                        f"({available_time:g} ms)",
                        total_time,
                        available_time,
                    )
                )

        return not errors, errors

    @staticmethod
    def validate_budget(config, field_path=""):
        errors = []
        budget = config.get("budget")
        if not isinstance(budget, Mapping):
            return True, []

        checks = [
            ("estimated_memory_mb", "max_memory_mb", "Estimated memory ({} MB) exceeds budget ({} MB)"),
            ("estimated_samples", "max_samples", "Estimated samples ({}) exceeds budget ({})"),
        ]
        for estimate_key, budget_key, template in checks:
            if estimate_key in config and budget_key in budget:
                estimate = config[estimate_key]
                limit = budget[budget_key]
                if estimate > limit:
                    errors.append(
                        ValidationError(
                            field_path or estimate_key,
                            "budget_exceeded",
                            template.format(f"{estimate:g}", f"{limit:g}"),
                            estimate,
                            limit,
                        )
                    )
        return not errors, errors


def _check_ramps_fit(element, stimulus_library, field_path):
    definition = stimulus_library.get(element.get("stimulus_ref"))
    if not isinstance(definition, Mapping):
        return []
    envelope = definition.get("envelope")
    if not isinstance(envelope, Mapping):
        return []
    attack = envelope.get("attack_ms", 0)
    release = envelope.get("release_ms", 0)
    if not (is_number(attack) and is_number(release)):
        return []
    if attack + release > element["duration_ms"]:
        return [
            ValidationError(
                field_path,
                "timing_infeasible",
                f"Envelope ramps ({attack + release:g} ms) exceed element duration "
                f"({element['duration_ms']:g} ms)",
                attack + release,
                f"<= {element['duration_ms']:g}",
            )
        ]
    return []
