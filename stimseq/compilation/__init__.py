from .plan import Element, Trial, TrialPlan  # noqa
from .element_table import ElementTable, ElementTableRow  # noqa
from .pattern_builder import PatternBuilderCore  # noqa
from .sequence_file import (  # noqa
    Event,
    Manifest,
    SequenceFile,
    TrialTableRow,
    read_hdf5,
    write_hdf5,
)
from .compiler import CompilerCore  # noqa
