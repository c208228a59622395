from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from typing import Optional, Tuple

from ..utils import json_to_data_frame


@dataclass(frozen=True)
class ElementTableRow:
    trial_index: int
    element_index: int
    stimulus_ref: str
    absolute_onset_ms: float
    duration_ms: float
    label: str
    role: Optional[str] = None
    symbol: Optional[str] = None
    ttl_code: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        names = [f.name for f in fields(cls)]
        return cls(**{key: value for key, value in data.items() if key in names})

    def to_dict(self):
        return asdict(self)

    @property
    def end_ms(self):
        return self.absolute_onset_ms + self.duration_ms


row_columns = [f.name for f in fields(ElementTableRow)]


@dataclass(frozen=True)
class ElementTable:
    """
    The flat, absolutely-timed schedule produced by
    :class:`~stimseq.compilation.pattern_builder.PatternBuilderCore`.

    Attributes
    ----------

    rows :
        One :class:`ElementTableRow` per element, in schedule order.

    trial_windows :
        For each trial of the plan, the end time of its latest element
        relative to the trial start (0 for omission trials).
    """

    rows: Tuple[ElementTableRow, ...] = ()
    trial_windows: Tuple[float, ...] = ()

    @classmethod
    def coerce(cls, x):
        """
        Accepts an :class:`ElementTable` or any sequence of rows
        (as :class:`ElementTableRow` objects or mappings).
        """
        if isinstance(x, cls):
            return x
        return cls(
            rows=tuple(
                ElementTableRow.from_dict(row) if isinstance(row, Mapping) else row
                for row in x
            )
        )

    def __iter__(self):
        return iter(self.rows)

    def __len__(self):
        return len(self.rows)

    def __getitem__(self, index):
        return self.rows[index]

    @property
    def is_empty(self):
        return len(self.rows) == 0

    def end_ms(self):
        if self.is_empty:
            return 0.0
        return max(row.end_ms for row in self.rows)

    def to_records(self):
        return [row.to_dict() for row in self.rows]

    def to_data_frame(self):
        return json_to_data_frame(self.to_records(), columns=row_columns)
