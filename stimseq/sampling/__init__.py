from .scope import Scope, ScopeManager  # noqa
from .rng import RNGStreamManager  # noqa
from .distributions import SAMPLERS, compute_moments  # noqa
from .field import (  # noqa
    Distribution,
    NumericFieldSampler,
    NumericFieldSpec,
    Scalar,
    is_field_spec,
    parse_field_spec,
)
