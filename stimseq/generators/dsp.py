"""
Signal-shaping steps shared by the stimulus generators.

Each generator synthesizes a mono ``float64`` signal and then passes it through
the same chain: envelope, level, clipping and channel routing.
Recoverable problems are raised as Python warnings (subclasses of
:class:`~stimseq.error.StimSeqWarning`) and also appended to a
``recorded`` list so that generators can report them in their metadata.
"""

import warnings
from collections.abc import Mapping

import numpy as np

from ..error import (
    CalibrationWarning,
    ClippingWarning,
    InvalidParameterError,
    RampTooLongWarning,
)
from ..utils import hash_object, sha256_bytes

default_channels = [0, 1]
valid_shapes = ["linear", "cosine", "exponential"]
valid_level_units = ["linear_0_1", "dB_FS", "dB_SPL"]


def record_warning(message, category, recorded):
    warnings.warn(message, category, stacklevel=3)
    if recorded is not None:
        recorded.append(message)


def create_ramp(n_samples: int, shape: str) -> np.ndarray:
    t = np.linspace(0, 1, n_samples)
    if shape == "linear":
        return t
    elif shape == "cosine":
        return 0.5 * (1 - np.cos(np.pi * t))
    elif shape == "exponential":
        return (np.exp(3 * t) - 1) / (np.exp(3) - 1)
    raise InvalidParameterError(
        f"Unknown envelope shape {shape!r}, expected one of {valid_shapes}."
    )


def apply_envelope(signal, envelope, context, recorded=None):
    """
    Multiplies ``signal`` by attack and release ramps.

    A ramp whose length is zero is ignored; a ramp as long as or longer than
    the signal is skipped with a :class:`~stimseq.error.RampTooLongWarning`.
    """
    if envelope is None:
        return signal

    n_samples = len(signal)
    shape = envelope.get("shape", "cosine")
    env = np.ones(n_samples)

    for key in ["attack_ms", "release_ms"]:
        ramp_samples = context.ms_to_samples(envelope.get(key, 0))
        if ramp_samples <= 0:
            continue
        if ramp_samples >= n_samples:
            record_warning(
                f"Envelope {key} ({ramp_samples} samples) is not shorter than the "
                f"signal ({n_samples} samples), skipping the ramp.",
                RampTooLongWarning,
                recorded,
            )
            continue
        ramp = create_ramp(ramp_samples, shape)
        if key == "attack_ms":
            env[:ramp_samples] = ramp
        else:
            env[-ramp_samples:] = ramp[::-1]

    return signal * env


def normalize_level(level):
    if isinstance(level, Mapping):
        return dict(level)
    return {"value": level, "unit": "linear_0_1"}


def level_gain(level, recorded=None) -> float:
    level = normalize_level(level)
    unit = level.get("unit", "linear_0_1")
    value = level["value"]

    if unit == "linear_0_1":
        if value < 0:
            raise InvalidParameterError(f"Linear level must be non-negative (got {value}).")
        return float(value)
    elif unit == "dB_FS":
        return 10 ** (value / 20)
    elif unit == "dB_SPL":
        calibration = level.get("calibration_ref")
        if calibration is None:
            record_warning(
                "dB_SPL requires a calibration reference, treating the level as dB_FS.",
                CalibrationWarning,
                recorded,
            )
            return 10 ** (value / 20)
        return calibration["linear"] * 10 ** ((value - calibration["db_spl"]) / 20)

    raise InvalidParameterError(
        f"Unknown level unit {unit!r}, expected one of {valid_level_units}."
    )


def apply_level(signal, level, recorded=None):
    level = normalize_level(level)
    scaled = signal * level_gain(level, recorded)

    rms_target = level.get("rms_target")
    if rms_target is not None:
        current_rms = np.sqrt(np.mean(scaled**2)) if len(scaled) > 0 else 0.0
        if current_rms > 0:
            scaled = scaled * (rms_target / current_rms)
    return scaled


def clip(signal, recorded=None):
    if len(signal) == 0:
        return signal, False
    peak = float(np.max(np.abs(signal)))
    if peak <= 1.0:
        return signal, False
    record_warning(
        f"Signal clipped (peak was {peak:g}).", ClippingWarning, recorded
    )
    return np.clip(signal, -1.0, 1.0), True


def routing_channels(routing):
    if routing is None:
        return list(default_channels)
    channels = list(routing.get("channels", default_channels))
    if len(channels) == 0 or any(int(ch) != ch or ch < 0 for ch in channels):
        raise InvalidParameterError(
            f"routing.channels must be a non-empty list of non-negative integers (got {channels})."
        )
    return [int(ch) for ch in channels]


def n_channels(routing) -> int:
    return max(routing_channels(routing)) + 1


def route_to_channels(signal, routing) -> np.ndarray:
    """
    Copies a mono signal into every channel listed in ``routing["channels"]``
    (0-indexed). The output has ``max(channels) + 1`` columns; unlisted
    columns stay silent.
    """
    channels = routing_channels(routing)
    audio = np.zeros((len(signal), max(channels) + 1), dtype=np.float32)
    for ch in channels:
        audio[:, ch] = signal
    return audio


def describe(audio, realized_params, context, clipped=False, recorded=None, **extra):
    """
    Builds the metadata dictionary returned alongside every generated buffer.
    """
    audio = np.ascontiguousarray(audio, dtype=np.float32)
    if audio.size > 0:
        peak = float(np.max(np.abs(audio)))
        rms = float(np.sqrt(np.mean(audio.astype(np.float64) ** 2)))
    else:
        peak = 0.0
        rms = 0.0
    return {
        "peak": peak,
        "rms": rms,
        "duration_ms": context.samples_to_ms(audio.shape[0]),
        "clipped": clipped,
        "realized_params": realized_params,
        "params_hash": hash_object(realized_params),
        "hash": sha256_bytes(audio),
        "warnings": list(recorded or []),
        **extra,
    }
