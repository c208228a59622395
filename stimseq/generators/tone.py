import numpy as np

from . import dsp
from .base import StimulusGenerator
from .registry import StimulusType, register_generator

default_envelope = {"attack_ms": 5, "release_ms": 5, "shape": "cosine"}


@register_generator(StimulusType.TONE_SIMPLE)
class ToneGenerator(StimulusGenerator):
    """
    Pure tone: ``sin(2 pi f t + phase)`` with attack/release ramps
    (5 ms cosine ramps unless an ``envelope`` is given).
    """

    def sample_parameters(self, raw_params, context):
        realized = {
            "frequency_hz": self.sample_required(raw_params, "frequency_hz", context),
            "duration_ms": self.sample_required(raw_params, "duration_ms", context),
            "level": self.sample_level(raw_params, context),
        }
        if "phase_deg" in raw_params:
            realized["phase_deg"] = context.sample_field(raw_params["phase_deg"], "phase_deg")
        return self.copy_optional(raw_params, realized, ["envelope", "routing", "seed"])

    def render(self, realized, context):
        self.check_positive(realized, ["frequency_hz", "duration_ms"])
        recorded = []

        n_samples = context.ms_to_samples(realized["duration_ms"])
        t = np.arange(n_samples) / context.fs_hz
        phase_rad = np.deg2rad(realized.get("phase_deg", 0))
        signal = np.sin(2 * np.pi * realized["frequency_hz"] * t + phase_rad)

        signal = dsp.apply_envelope(
            signal, realized.get("envelope", default_envelope), context, recorded
        )
        signal = dsp.apply_level(signal, realized["level"], recorded)
        signal, clipped = dsp.clip(signal, recorded)

        audio = dsp.route_to_channels(signal, realized.get("routing"))
        return audio, dsp.describe(audio, realized, context, clipped, recorded)
