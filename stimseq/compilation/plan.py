import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..error import SpecError
from ..validation.errors import join_path
from ..validation.numeric_field import is_number

optional_element_fields = ["role", "symbol", "ttl_code"]


@dataclass(frozen=True)
class Element:
    """
    One scheduled stimulus presentation within a trial.

    Attributes
    ----------

    stimulus_ref :
        Key of the stimulus definition in the stimulus library.

    scheduled_onset_ms :
        Onset relative to the start of the trial.

    duration_ms :
        Scheduled duration.

    role, symbol :
        Optional annotations carried through to the element table.

    ttl_code :
        Optional sync code (1 to 255) to pulse at the element onset.
    """

    stimulus_ref: str
    scheduled_onset_ms: float
    duration_ms: float
    role: Optional[str] = None
    symbol: Optional[str] = None
    ttl_code: Optional[int] = None

    @classmethod
    def from_dict(cls, data, path="element"):
        _check_fields(data, ["stimulus_ref", "scheduled_onset_ms", "duration_ms"], path)
        return cls(
            stimulus_ref=data["stimulus_ref"],
            scheduled_onset_ms=data["scheduled_onset_ms"],
            duration_ms=data["duration_ms"],
            **{key: data.get(key) for key in optional_element_fields},
        )

    @property
    def end_ms(self):
        return self.scheduled_onset_ms + self.duration_ms


@dataclass(frozen=True)
class Trial:
    trial_index: int
    label: str
    elements: Tuple[Element, ...] = ()

    @classmethod
    def from_dict(cls, data, path="trial"):
        _check_fields(data, ["trial_index", "label", "elements"], path)
        if not isinstance(data["elements"], (list, tuple)):
            raise SpecError(f"{join_path(path, 'elements')} must be a list.")
        return cls(
            trial_index=data["trial_index"],
            label=data["label"],
            elements=tuple(
                Element.from_dict(element, join_path(path, f"elements.{j}"))
                for j, element in enumerate(data["elements"])
            ),
        )

    @property
    def is_omission(self):
        return len(self.elements) == 0


@dataclass(frozen=True)
class TrialPlan:
    n_trials: int
    iti_ms: float
    trials: Tuple[Trial, ...] = ()
    refractory_ms: float = 0.0

    @classmethod
    def from_dict(cls, data):
        _check_fields(data, ["n_trials", "iti_ms", "trials"], "trial_plan")
        if not isinstance(data["trials"], (list, tuple)):
            raise SpecError("trials must be a list.")
        refractory_ms = data.get("refractory_ms")
        return cls(
            n_trials=data["n_trials"],
            iti_ms=data["iti_ms"],
            trials=tuple(
                Trial.from_dict(trial, f"trials.{i}")
                for i, trial in enumerate(data["trials"])
            ),
            refractory_ms=0.0 if refractory_ms is None else refractory_ms,
        )

    def check(self) -> List[str]:
        """
        Lists every timing or value constraint that the plan breaks.
        An empty list means the plan can be built.
        """
        problems = []
        if not _is_integer(self.n_trials) or self.n_trials < 0:
            problems.append(f"n_trials must be a non-negative integer (got {self.n_trials!r}).")
        if not _is_finite(self.iti_ms) or self.iti_ms < 0:
            problems.append(f"iti_ms must be a finite non-negative number (got {self.iti_ms!r}).")
        if not _is_finite(self.refractory_ms) or self.refractory_ms < 0:
            problems.append(
                f"refractory_ms must be a finite non-negative number (got {self.refractory_ms!r})."
            )

        for i, trial in enumerate(self.trials):
            if not _is_integer(trial.trial_index):
                problems.append(f"trials.{i}.trial_index must be an integer.")
            if not isinstance(trial.label, str):
                problems.append(f"trials.{i}.label must be a string.")
            for j, element in enumerate(trial.elements):
                problems += _check_element(element, f"trials.{i}.elements.{j}")
        return problems


def _check_element(element: Element, path):
    problems = []
    if not isinstance(element.stimulus_ref, str) or element.stimulus_ref == "":
        problems.append(f"{path}.stimulus_ref must be a non-empty string.")
    if not _is_finite(element.scheduled_onset_ms) or element.scheduled_onset_ms < 0:
        problems.append(
            f"{path}.scheduled_onset_ms must be finite and >= 0 (got {element.scheduled_onset_ms!r})."
        )
    if not _is_finite(element.duration_ms) or element.duration_ms <= 0:
        problems.append(f"{path}.duration_ms must be finite and > 0 (got {element.duration_ms!r}).")
    if element.ttl_code is not None and (
        not _is_integer(element.ttl_code) or not 1 <= element.ttl_code <= 255
    ):
        problems.append(f"{path}.ttl_code must be an integer between 1 and 255.")
    return problems


def _is_finite(x):
    return is_number(x) and math.isfinite(x)


def _is_integer(x):
    return is_number(x) and float(x).is_integer()


def _check_fields(data, required, path):
    if not isinstance(data, Mapping):
        raise SpecError(f"{path} must be a mapping (got {type(data).__name__}).")
    missing = [key for key in required if key not in data]
    if missing:
        raise SpecError(
            f"{path} is missing required field(s): {', '.join(missing)}."
        )
