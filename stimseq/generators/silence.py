import numpy as np

from . import dsp
from .base import StimulusGenerator
from .registry import StimulusType, register_generator


@register_generator(StimulusType.SILENCE)
class SilenceGenerator(StimulusGenerator):
    def sample_parameters(self, raw_params, context):
        realized = {
            "duration_ms": self.sample_required(raw_params, "duration_ms", context),
        }
        return self.copy_optional(raw_params, realized, ["routing"])

    def render(self, realized, context):
        self.check_positive(realized, ["duration_ms"])
        n_samples = context.ms_to_samples(realized["duration_ms"])
        audio = np.zeros(
            (n_samples, dsp.n_channels(realized.get("routing"))), dtype=np.float32
        )
        return audio, dsp.describe(audio, realized, context)
