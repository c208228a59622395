import numpy as np
import pytest

from stimseq.error import (
    CalibrationWarning,
    ClippingWarning,
    InvalidParameterError,
    RampTooLongWarning,
    UnsupportedStimulusError,
)
from stimseq.generators import (
    BandpassNoiseGenerator,
    GeneratorContext,
    StimulusType,
    ToneGenerator,
    get_generator,
    supported_types,
)
from stimseq.generators import dsp


def tone(**kwargs):
    return {
        "type": "tone.simple",
        "frequency_hz": 1000,
        "duration_ms": 100,
        "level": 0.5,
        **kwargs,
    }


def noise(**kwargs):
    return {
        "type": "noise.bandpass",
        "low_freq_hz": 500,
        "high_freq_hz": 4000,
        "duration_ms": 500,
        "level": 0.2,
        **kwargs,
    }


def test_registry():
    assert isinstance(get_generator("tone.simple"), ToneGenerator)
    assert isinstance(get_generator(StimulusType.NOISE_BANDPASS), BandpassNoiseGenerator)
    assert set(supported_types()) == {
        "tone.simple",
        "noise.bandpass",
        "click.train.fixed",
        "silence",
    }
    with pytest.raises(UnsupportedStimulusError):
        get_generator("tone.complex")
    with pytest.raises(UnsupportedStimulusError):
        get_generator(None)


def test_context_conversions():
    context = GeneratorContext.create(fs_hz=1000, master_seed=1)
    assert context.ms_to_samples(2.5) == 3
    assert context.ms_to_samples(2.4) == 2
    assert context.samples_to_ms(250) == 250
    assert context.scope_manager is context.sampler.scope_manager
    with pytest.raises(ValueError):
        GeneratorContext.create(fs_hz=0)


def test_tone_shape_and_metadata(context):
    audio, metadata = get_generator("tone.simple").generate(tone(), context)
    assert audio.dtype == np.float32
    assert audio.shape == (4800, 2)
    np.testing.assert_array_equal(audio[:, 0], audio[:, 1])
    assert metadata["peak"] == pytest.approx(0.5, abs=1e-3)
    # The 5 ms cosine ramps cover 10% of the tone with mean-square gain 3/8
    assert metadata["rms"] == pytest.approx(0.5 / np.sqrt(2) * np.sqrt(0.9375), rel=0.01)
    assert metadata["duration_ms"] == pytest.approx(100)
    assert metadata["clipped"] is False
    assert len(metadata["hash"]) == 64
    assert metadata["warnings"] == []
    assert metadata["realized_params"]["level"] == {"value": 0.5, "unit": "linear_0_1"}


def test_tone_default_envelope(context):
    audio, _ = get_generator("tone.simple").generate(tone(phase_deg=90), context)
    # 5 ms cosine ramps at both ends
    assert audio[0, 0] == 0
    assert audio[-1, 0] == pytest.approx(0, abs=1e-6)
    assert abs(audio[240, 0]) == pytest.approx(0.5, abs=1e-3)


def test_tone_render_is_deterministic(context):
    generator = get_generator("tone.simple")
    realized = generator.sample_parameters(tone(), context)
    a, meta_a = generator.render(realized, context)
    b, meta_b = generator.render(realized, context)
    np.testing.assert_array_equal(a, b)
    assert meta_a["hash"] == meta_b["hash"]


def test_tone_db_fs(context):
    _, metadata = get_generator("tone.simple").generate(
        tone(level={"value": -6, "unit": "dB_FS"}), context
    )
    assert metadata["peak"] == pytest.approx(10 ** (-6 / 20), abs=1e-3)


def test_tone_db_spl(context):
    generator = get_generator("tone.simple")
    with pytest.warns(CalibrationWarning):
        _, metadata = generator.generate(tone(level={"value": -20, "unit": "dB_SPL"}), context)
    assert metadata["peak"] == pytest.approx(0.1, abs=1e-3)
    assert len(metadata["warnings"]) == 1

    calibrated = {"value": 74, "unit": "dB_SPL", "calibration_ref": {"db_spl": 94, "linear": 1.0}}
    _, metadata = generator.generate(tone(level=calibrated), context)
    assert metadata["peak"] == pytest.approx(0.1, abs=1e-3)
    assert metadata["warnings"] == []


def test_tone_clipping(context):
    with pytest.warns(ClippingWarning):
        audio, metadata = get_generator("tone.simple").generate(tone(level=2.0), context)
    assert metadata["clipped"] is True
    assert metadata["peak"] == 1.0
    assert np.max(np.abs(audio)) == 1.0


def test_ramp_too_long_is_skipped(context):
    envelope = {"attack_ms": 200, "release_ms": 0, "shape": "linear"}
    with pytest.warns(RampTooLongWarning):
        audio, metadata = get_generator("tone.simple").generate(
            tone(envelope=envelope, phase_deg=90), context
        )
    # No attack ramp applied: the signal starts at full amplitude
    assert audio[0, 0] == pytest.approx(0.5)
    assert len(metadata["warnings"]) == 1


def test_tone_sampled_parameters(context):
    spec = tone(
        frequency_hz={
            "dist": "categorical",
            "categories": [1500, 2000],
            "probabilities": [0.5, 0.5],
            "scope": "per_trial",
        },
        level={"value": {"dist": "uniform", "min": 0.1, "max": 0.2, "scope": "per_trial"}, "unit": "linear_0_1"},
    )
    realized = get_generator("tone.simple").sample_parameters(spec, context)
    assert realized["frequency_hz"] in [1500, 2000]
    assert 0.1 <= realized["level"]["value"] < 0.2
    assert set(context.rng_manager.get_stream_names()) == {
        "param_frequency_hz",
        "param_level.value",
    }


def test_tone_invalid_parameters(context):
    generator = get_generator("tone.simple")
    with pytest.raises(InvalidParameterError):
        generator.sample_parameters({"type": "tone.simple", "duration_ms": 100, "level": 1}, context)
    with pytest.raises(InvalidParameterError):
        generator.generate(tone(frequency_hz=-5), context)
    with pytest.raises(InvalidParameterError):
        generator.generate(tone(level={"value": 0.5, "unit": "volts"}), context)


def test_level_with_unit_needs_value(context):
    level = {"dist": "uniform", "min": -20, "max": -10, "unit": "dB_FS"}
    with pytest.raises(InvalidParameterError, match="value"):
        get_generator("tone.simple").sample_parameters(tone(level=level), context)
    assert context.rng_manager.get_stream_names() == []


def test_routing(context):
    audio, _ = get_generator("tone.simple").generate(tone(routing={"channels": [2]}), context)
    assert audio.shape[1] == 3
    assert np.all(audio[:, :2] == 0)
    assert np.any(audio[:, 2] != 0)


def test_frozen_noise():
    def render():
        context = GeneratorContext.create(fs_hz=48000, master_seed=1)
        return get_generator("noise.bandpass").generate(noise(seed=7), context)

    (a, meta_a), (b, meta_b) = render(), render()
    np.testing.assert_array_equal(a, b)
    assert meta_a["realized_params"]["seed"] == 7


def test_noise_seed_drawn_from_stream(context):
    generator = get_generator("noise.bandpass")
    a, meta_a = generator.generate(noise(), context)
    b, meta_b = generator.generate(noise(), context)
    assert "noise_default" in context.rng_manager.get_stream_names()
    assert meta_a["realized_params"]["seed"] != meta_b["realized_params"]["seed"]
    assert not np.array_equal(a, b)

    # Re-rendering the realized parameters reproduces the noise
    c, _ = generator.render(meta_a["realized_params"], context)
    np.testing.assert_array_equal(a, c)


def test_noise_is_band_limited(context):
    audio, _ = get_generator("noise.bandpass").generate(noise(seed=3), context)
    spectrum = np.abs(np.fft.rfft(audio[:, 0])) ** 2
    freqs = np.fft.rfftfreq(audio.shape[0], 1 / context.fs_hz)
    in_band = (freqs >= 500) & (freqs <= 4000)
    assert spectrum[in_band].sum() / spectrum.sum() > 0.9


def test_noise_rms_target(context):
    level = {"value": 1.0, "unit": "linear_0_1", "rms_target": 0.1}
    _, metadata = get_generator("noise.bandpass").generate(noise(level=level, seed=1), context)
    assert metadata["rms"] == pytest.approx(0.1, rel=1e-3)


def test_noise_invalid_band(context):
    generator = get_generator("noise.bandpass")
    with pytest.raises(InvalidParameterError):
        generator.generate(noise(low_freq_hz=4000, high_freq_hz=500), context)
    with pytest.raises(InvalidParameterError):
        generator.generate(noise(high_freq_hz=30000), context)


def test_click_train(context):
    spec = {
        "type": "click.train.fixed",
        "click_rate_hz": 40,
        "n_clicks": 4,
        "click_duration_ms": 1,
        "level": 0.8,
    }
    audio, metadata = get_generator("click.train.fixed").generate(spec, context)
    assert audio.shape == (3648, 2)
    assert metadata["n_clicks"] == 4
    assert metadata["total_duration_ms"] == pytest.approx(76)

    nonzero = np.flatnonzero(audio[:, 0])
    assert len(nonzero) == 4 * 48
    assert list(nonzero[::48]) == [0, 1200, 2400, 3600]
    assert np.all(audio[nonzero, 0] == np.float32(0.8))


def test_click_train_rounds_n_clicks(context):
    spec = {
        "type": "click.train.fixed",
        "click_rate_hz": 10,
        "n_clicks": {"value": 2.5},
        "click_duration_ms": 1,
        "level": 1,
    }
    realized = get_generator("click.train.fixed").sample_parameters(spec, context)
    assert realized["n_clicks"] == 3


def test_click_train_envelope_spans_train(context):
    spec = {
        "type": "click.train.fixed",
        "click_rate_hz": 10,
        "n_clicks": 3,
        "click_duration_ms": 10,
        "level": 1,
        "envelope": {"attack_ms": 100, "release_ms": 0, "shape": "linear"},
    }
    audio, _ = get_generator("click.train.fixed").generate(spec, context)
    first_click = audio[:480, 0].max()
    last_click = audio[9600:, 0].max()
    assert first_click < 0.2
    assert last_click == pytest.approx(1.0)


def test_silence(context):
    audio, metadata = get_generator("silence").generate(
        {"type": "silence", "duration_ms": 50}, context
    )
    assert audio.shape == (2400, 2)
    assert not audio.any()
    assert metadata["peak"] == 0
    assert metadata["rms"] == 0

    audio, _ = get_generator("silence").generate(
        {"type": "silence", "duration_ms": 50, "routing": {"channels": [0, 3]}}, context
    )
    assert audio.shape == (2400, 4)


def test_ramp_shapes():
    for shape in ["linear", "cosine", "exponential"]:
        ramp = dsp.create_ramp(11, shape)
        assert ramp[0] == pytest.approx(0)
        assert ramp[-1] == pytest.approx(1)
        assert np.all(np.diff(ramp) >= 0)
    assert dsp.create_ramp(3, "cosine")[1] == pytest.approx(0.5)
    with pytest.raises(InvalidParameterError):
        dsp.create_ramp(10, "square")


def test_routing_channels():
    assert dsp.routing_channels(None) == [0, 1]
    assert dsp.n_channels({"channels": [0, 5]}) == 6
    with pytest.raises(InvalidParameterError):
        dsp.routing_channels({"channels": [-1]})
