from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

import numpy as np

from ..config import get_from_config
from ..error import InvalidFieldSpecError
from ..validation.errors import format_errors
from ..validation.numeric_field import NumericFieldValidator
from .distributions import compute_moments as compute_distribution_moments
from .distributions import get_sampler
from .rng import RNGStreamManager
from .scope import ScopeManager


@dataclass(frozen=True)
class Scalar:
    value: Any

    def to_dict(self):
        return {"value": self.value}


@dataclass(frozen=True)
class Distribution:
    kind: str
    params: dict = field(default_factory=dict)
    scope: str = "per_trial"

    def to_dict(self):
        return {"dist": self.kind, **self.params, "scope": self.scope}


NumericFieldSpec = Union[Scalar, Distribution]


def is_field_spec(x):
    """
    ``True`` if ``x`` looks like a numeric field specification mapping
    (as opposed to an ordinary nested structure).
    """
    return isinstance(x, (Scalar, Distribution)) or (
        isinstance(x, Mapping) and ("dist" in x or "value" in x)
    )


def parse_field_spec(raw, field_path="", validate=True) -> NumericFieldSpec:
    """
    Converts a raw numeric field (a bare number, ``{"value": x}``,
    or ``{"dist": ..., ..., "scope": ...}``) into a :class:`Scalar`
    or :class:`Distribution`.

    Raises
    ------

    InvalidFieldSpecError
        If ``validate`` is ``True`` and the specification breaks any rule;
        the exception lists every violation.
    """
    if isinstance(raw, (Scalar, Distribution)):
        return raw

    if validate:
        valid, errors = NumericFieldValidator.validate(raw, field_path)
        if not valid:
            raise InvalidFieldSpecError(
                f"Field validation failed:\n{format_errors(errors)}", errors
            )

    if not isinstance(raw, Mapping):
        return Scalar(raw)
    if "value" in raw and "dist" not in raw:
        return Scalar(raw["value"])
    if "dist" not in raw:
        raise InvalidFieldSpecError(
            f'Numeric field {field_path!r} must have either "value" or "dist" field'
        )

    params = {key: value for key, value in raw.items() if key not in ["dist", "scope"]}
    return Distribution(kind=raw["dist"], params=params, scope=raw.get("scope"))


class NumericFieldSampler:
    """
    Resolves numeric field specifications into concrete values.

    Scalars are returned unchanged. Distributions are sampled from the RNG stream
    ``"param_" + param_name``, and the result is cached according to the
    field's scope by the :class:`~stimseq.sampling.scope.ScopeManager`.

    Parameters
    ----------

    rng_manager :
        Issues the named RNG streams.

    scope_manager :
        Caches per-block and per-session values.

    validate_first :
        Whether to validate each field specification before sampling
        (default taken from the ``validate_fields`` configuration value).
    """

    def __init__(
        self,
        rng_manager: RNGStreamManager,
        scope_manager: ScopeManager,
        validate_first: bool = None,
    ):
        if validate_first is None:
            validate_first = get_from_config("validate_fields")
        self.rng_manager = rng_manager
        self.scope_manager = scope_manager
        self.validate_first = validate_first

    def sample(self, field_spec, param_name: str, n_samples: int = 1):
        spec = parse_field_spec(field_spec, param_name, validate=self.validate_first)

        if isinstance(spec, Scalar):
            if n_samples == 1:
                return spec.value
            return np.full(n_samples, spec.value)

        stream = self.rng_manager.get_stream("param_" + param_name)

        def sample_fn():
            return self.sample_from_distribution(spec, stream, n_samples)

        return self.scope_manager.get_or_sample(param_name, spec.scope, sample_fn)

    def sample_from_distribution(self, spec: Distribution, stream, n_samples: int = 1):
        sampler = get_sampler(spec.kind)
        values = sampler(spec.params, stream, n_samples)
        if n_samples == 1:
            return values[0].item()
        return values

    def sample_struct(self, spec_struct: Mapping, param_prefix: str = ""):
        result = {}
        for field_name, field_value in spec_struct.items():
            if param_prefix:
                param_name = f"{param_prefix}.{field_name}"
            else:
                param_name = field_name

            if is_field_spec(field_value):
                result[field_name] = self.sample(field_value, param_name)
            elif isinstance(field_value, Mapping):
                result[field_name] = self.sample_struct(field_value, param_name)
            else:
                result[field_name] = field_value
        return result

    def compute_moments(self, field_spec):
        if isinstance(field_spec, (Scalar, Distribution)):
            field_spec = field_spec.to_dict()
        elif not isinstance(field_spec, Mapping):
            return {"mean": field_spec, "variance": 0.0}
        return compute_distribution_moments(field_spec)
