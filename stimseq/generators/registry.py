from enum import Enum

from ..error import UnsupportedStimulusError


class StimulusType(str, Enum):
    TONE_SIMPLE = "tone.simple"
    NOISE_BANDPASS = "noise.bandpass"
    CLICK_TRAIN_FIXED = "click.train.fixed"
    SILENCE = "silence"


generator_registry = {}


def register_generator(stimulus_type):
    """
    Class decorator that makes a generator available for dispatch
    under the given :class:`StimulusType`.
    """
    stimulus_type = StimulusType(stimulus_type)

    def decorator(cls):
        cls.stimulus_type = stimulus_type
        generator_registry[stimulus_type] = cls
        return cls

    return decorator


def get_generator(stimulus_type):
    try:
        key = StimulusType(stimulus_type)
    except ValueError:
        raise UnsupportedStimulusError(
            f"Unsupported stimulus type: {stimulus_type!r} "
            f"(supported types: {', '.join(supported_types())})."
        )
    if key not in generator_registry:
        raise UnsupportedStimulusError(f"No generator registered for {key.value!r}.")
    return generator_registry[key]()


def supported_types():
    return [stimulus_type.value for stimulus_type in generator_registry]
