from collections.abc import Mapping

from ..error import InvalidParameterError
from . import dsp


class StimulusGenerator:
    """
    Generic stimulus generator.

    Generation happens in two steps.
    :meth:`sample_parameters` resolves every numeric field of a stimulus
    definition (drawing from the context's RNG streams where a field is a
    distribution) and returns a dictionary of concrete values.
    :meth:`render` turns such a dictionary into audio.
    Rendering makes no random draws of its own, so the same realized parameters
    and sample rate always give the same audio, whatever order
    elements are rendered in.

    Subclasses are registered for dispatch with
    :func:`~stimseq.generators.registry.register_generator`.
    """

    stimulus_type = None

    def generate(self, raw_params, context):
        """
        Resolves ``raw_params`` and renders the result.

        Returns
        -------

        A tuple ``(audio, metadata)``, where ``audio`` is a ``float32`` array of
        shape ``[samples, channels]``.
        """
        realized = self.sample_parameters(raw_params, context)
        return self.render(realized, context)

    def sample_parameters(self, raw_params, context) -> dict:
        raise NotImplementedError

    def render(self, realized, context):
        raise NotImplementedError

    def sample_required(self, raw_params, name, context):
        if name not in raw_params:
            raise InvalidParameterError(
                f"{self.stimulus_type.value} requires the field {name!r}."
            )
        return context.sample_field(raw_params[name], name)

    def sample_level(self, raw_params, context):
        if "level" not in raw_params:
            raise InvalidParameterError(
                f"{self.stimulus_type.value} requires the field 'level'."
            )
        level = raw_params["level"]
        if isinstance(level, Mapping) and "unit" in level:
            if "value" not in level:
                raise InvalidParameterError(
                    "A level with a unit must put its amount under 'value', as in "
                    "{'value': <number or distribution>, 'unit': 'dB_FS'} "
                    f"(got {dict(level)!r})."
                )
            level = dict(level)
            level["value"] = context.sample_field(level["value"], "level.value")
            return level
        return dsp.normalize_level(context.sample_field(level, "level.value"))

    def copy_optional(self, raw_params, realized, names):
        for name in names:
            if name in raw_params:
                realized[name] = raw_params[name]
        return realized

    def check_positive(self, realized, names):
        for name in names:
            if not realized[name] > 0:
                raise InvalidParameterError(
                    f"{name} must be positive (got {realized[name]})."
                )
