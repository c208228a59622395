# Registering the jsonpickle numpy handlers and the stimulus generators
from . import serialize  # noqa
from .compilation import (  # noqa
    CompilerCore,
    ElementTable,
    ElementTableRow,
    PatternBuilderCore,
    SequenceFile,
    TrialPlan,
    read_hdf5,
    write_hdf5,
)
from .generators import GeneratorContext, StimulusType, get_generator  # noqa
from .sampling import NumericFieldSampler, RNGStreamManager, ScopeManager  # noqa
from .version import stimseq_version

__version__ = stimseq_version
