from scipy import signal as sps

from ..error import InvalidParameterError
from ..sampling.rng import SEED_MODULUS, make_stream
from . import dsp
from .base import StimulusGenerator
from .registry import StimulusType, register_generator

FILTER_ORDER = 4


def bandpass(x, low_freq_hz, high_freq_hz, fs_hz):
    """
    Zero-phase Butterworth bandpass (the filter is run forwards then backwards,
    so the effective order is twice ``FILTER_ORDER``).
    """
    if len(x) == 0:
        return x
    sos = sps.butter(
        FILTER_ORDER, [low_freq_hz, high_freq_hz], btype="bandpass", fs=fs_hz, output="sos"
    )
    padlen = min(3 * (2 * len(sos) + 1), len(x) - 1)
    return sps.sosfiltfilt(sos, x, padlen=padlen)


@register_generator(StimulusType.NOISE_BANDPASS)
class BandpassNoiseGenerator(StimulusGenerator):
    """
    Gaussian white noise filtered into the band ``[low_freq_hz, high_freq_hz]``.

    The noise seed is fixed when parameters are resolved.
    A definition with an explicit ``seed`` produces the same waveform every time
    it is rendered ("frozen" noise); otherwise each realization takes a fresh seed
    from the ``noise_default`` stream.
    """

    def sample_parameters(self, raw_params, context):
        realized = {
            "low_freq_hz": self.sample_required(raw_params, "low_freq_hz", context),
            "high_freq_hz": self.sample_required(raw_params, "high_freq_hz", context),
            "duration_ms": self.sample_required(raw_params, "duration_ms", context),
            "level": self.sample_level(raw_params, context),
        }
        self.copy_optional(raw_params, realized, ["envelope", "routing"])

        if raw_params.get("seed") is not None:
            realized["seed"] = int(raw_params["seed"])
        else:
            stream = context.get_rng_stream("noise_default")
            realized["seed"] = int(stream.integers(0, SEED_MODULUS))
        return realized

    def render(self, realized, context):
        self.check_positive(realized, ["low_freq_hz", "duration_ms"])
        nyquist = context.fs_hz / 2
        if not realized["low_freq_hz"] < realized["high_freq_hz"] < nyquist:
            raise InvalidParameterError(
                "Bandpass requires 0 < low_freq_hz < high_freq_hz < nyquist "
                f"(got {realized['low_freq_hz']}, {realized['high_freq_hz']}, nyquist={nyquist:g})."
            )
        recorded = []

        n_samples = context.ms_to_samples(realized["duration_ms"])
        noise = make_stream(realized["seed"]).standard_normal(n_samples)

        signal = bandpass(
            noise, realized["low_freq_hz"], realized["high_freq_hz"], context.fs_hz
        )
        signal = dsp.apply_envelope(signal, realized.get("envelope"), context, recorded)
        signal = dsp.apply_level(signal, realized["level"], recorded)
        signal, clipped = dsp.clip(signal, recorded)

        audio = dsp.route_to_channels(signal, realized.get("routing"))
        return audio, dsp.describe(audio, realized, context, clipped, recorded)
