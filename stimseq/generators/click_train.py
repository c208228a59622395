import numpy as np

from ..error import InvalidParameterError
from ..utils import round_half_up
from . import dsp
from .base import StimulusGenerator
from .registry import StimulusType, register_generator


@register_generator(StimulusType.CLICK_TRAIN_FIXED)
class ClickTrainGenerator(StimulusGenerator):
    """
    ``n_clicks`` rectangular pulses at a fixed rate.
    The envelope, if any, spans the whole train rather than each click.
    """

    def sample_parameters(self, raw_params, context):
        realized = {
            "click_rate_hz": self.sample_required(raw_params, "click_rate_hz", context),
            "n_clicks": round_half_up(self.sample_required(raw_params, "n_clicks", context)),
            "click_duration_ms": self.sample_required(raw_params, "click_duration_ms", context),
            "level": self.sample_level(raw_params, context),
        }
        return self.copy_optional(raw_params, realized, ["envelope", "routing"])

    def render(self, realized, context):
        self.check_positive(realized, ["click_rate_hz", "click_duration_ms"])
        if realized["n_clicks"] < 1:
            raise InvalidParameterError(
                f"n_clicks must be at least 1 (got {realized['n_clicks']})."
            )
        recorded = []

        ioi_ms = 1000 / realized["click_rate_hz"]
        total_duration_ms = ioi_ms * (realized["n_clicks"] - 1) + realized["click_duration_ms"]
        n_samples = context.ms_to_samples(total_duration_ms)
        click_samples = context.ms_to_samples(realized["click_duration_ms"])

        signal = np.zeros(n_samples)
        for i in range(realized["n_clicks"]):
            onset = context.ms_to_samples(i * ioi_ms)
            signal[onset : onset + click_samples] = 1.0

        signal = dsp.apply_envelope(signal, realized.get("envelope"), context, recorded)
        signal = dsp.apply_level(signal, realized["level"], recorded)
        signal, clipped = dsp.clip(signal, recorded)

        audio = dsp.route_to_channels(signal, realized.get("routing"))
        metadata = dsp.describe(
            audio,
            realized,
            context,
            clipped,
            recorded,
            n_clicks=realized["n_clicks"],
            total_duration_ms=total_duration_ms,
        )
        return audio, metadata
