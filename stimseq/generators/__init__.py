from .registry import (  # noqa
    StimulusType,
    generator_registry,
    get_generator,
    register_generator,
    supported_types,
)
from .context import GeneratorContext  # noqa
from .base import StimulusGenerator  # noqa

# Importing the generator modules registers them.
from .tone import ToneGenerator  # noqa
from .noise import BandpassNoiseGenerator  # noqa
from .click_train import ClickTrainGenerator  # noqa
from .silence import SilenceGenerator  # noqa
