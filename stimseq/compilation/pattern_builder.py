from collections.abc import Mapping

from ..error import SpecError
from ..utils import get_logger
from .element_table import ElementTable, ElementTableRow
from .plan import TrialPlan

logger = get_logger()


class PatternBuilderCore:
    """
    Expands a trial plan into an :class:`~stimseq.compilation.element_table.ElementTable`.

    A single time cursor walks the trials in order.
    Each trial starts at the cursor; its elements are placed at
    ``trial_start + scheduled_onset_ms``.
    After a trial with elements the cursor moves to
    ``trial_start + trial_duration + refractory_ms + iti_ms``,
    where ``trial_duration`` is the latest element end within the trial.
    An omission trial (no elements) emits no rows and moves the cursor by ``iti_ms``.

    Elements within one trial may overlap; checking for that is left to
    :meth:`~stimseq.validation.CustomValidators.validate_timing_feasibility`.
    """

    def build(self, trial_plan) -> ElementTable:
        plan = self.prepare(trial_plan)

        rows = []
        trial_windows = []
        cursor = 0.0

        for trial in plan.trials:
            trial_start = cursor

            if trial.is_omission:
                trial_windows.append(0.0)
                cursor += plan.iti_ms
                continue

            trial_duration = 0.0
            for element_index, element in enumerate(trial.elements):
                rows.append(
                    ElementTableRow(
                        trial_index=trial.trial_index,
                        element_index=element_index,
                        stimulus_ref=element.stimulus_ref,
                        absolute_onset_ms=trial_start + element.scheduled_onset_ms,
                        duration_ms=element.duration_ms,
                        label=trial.label,
                        role=element.role,
                        symbol=element.symbol,
                        ttl_code=element.ttl_code,
                    )
                )
                trial_duration = max(trial_duration, element.end_ms)

            trial_windows.append(trial_duration)
            cursor = trial_start + trial_duration + plan.refractory_ms + plan.iti_ms

        logger.info(
            "Built element table with %i elements across %i trials (%.1f ms).",
            len(rows),
            len(plan.trials),
            cursor,
        )
        return ElementTable(rows=tuple(rows), trial_windows=tuple(trial_windows))

    def prepare(self, trial_plan) -> TrialPlan:
        if isinstance(trial_plan, Mapping):
            plan = TrialPlan.from_dict(trial_plan)
        elif isinstance(trial_plan, TrialPlan):
            plan = trial_plan
        else:
            raise SpecError(
                f"Expected a trial plan mapping or TrialPlan, got {type(trial_plan).__name__}."
            )

        problems = plan.check()
        if problems:
            raise SpecError(
                "Invalid trial plan:\n" + "\n".join(f"  - {p}" for p in problems)
            )

        if plan.n_trials != len(plan.trials):
            logger.warning(
                "Trial plan declares n_trials=%i but contains %i trials.",
                plan.n_trials,
                len(plan.trials),
            )
        return plan
