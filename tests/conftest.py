import pytest

from stimseq.config import get_config
from stimseq.generators import GeneratorContext
from stimseq.sampling import NumericFieldSampler, RNGStreamManager, ScopeManager
from stimseq.utils import disable_logger

FS_HZ = 48000.0


@pytest.fixture()
def config():
    c = get_config()
    with disable_logger():
        c.load()
    yield c
    # Undo anything the test set explicitly.
    c.load()


@pytest.fixture()
def rng_manager():
    return RNGStreamManager(master_seed=42)


@pytest.fixture()
def scope_manager():
    return ScopeManager()


@pytest.fixture()
def sampler(rng_manager, scope_manager):
    return NumericFieldSampler(rng_manager, scope_manager)


@pytest.fixture()
def context():
    return GeneratorContext.create(fs_hz=FS_HZ, master_seed=42)


@pytest.fixture()
def stimulus_library():
    return {
        "standard": {
            "type": "tone.simple",
            "frequency_hz": 1000,
            "duration_ms": 100,
            "level": {"value": 0.5, "unit": "linear_0_1"},
            "routing": {"channels": [0, 1]},
        },
        "deviant": {
            "type": "tone.simple",
            "frequency_hz": {
                "dist": "categorical",
                "categories": [1500, 2000],
                "probabilities": [0.5, 0.5],
                "scope": "per_trial",
            },
            "duration_ms": 100,
            "level": {"value": -6, "unit": "dB_FS"},
            "routing": {"channels": [0, 1]},
        },
        "noise": {
            "type": "noise.bandpass",
            "low_freq_hz": 500,
            "high_freq_hz": 4000,
            "duration_ms": 50,
            "level": {"value": 0.2, "unit": "linear_0_1"},
            "envelope": {"attack_ms": 5, "release_ms": 5, "shape": "cosine"},
        },
        "clicks": {
            "type": "click.train.fixed",
            "click_rate_hz": 40,
            "n_clicks": 4,
            "click_duration_ms": 1,
            "level": 0.8,
        },
        "gap": {"type": "silence", "duration_ms": 50},
    }


def make_trial(trial_index, label, *elements):
    return {
        "trial_index": trial_index,
        "label": label,
        "elements": [
            {"stimulus_ref": ref, "scheduled_onset_ms": onset, "duration_ms": duration}
            for ref, onset, duration in elements
        ],
    }


@pytest.fixture()
def trial_plan():
    return {
        "n_trials": 4,
        "iti_ms": 500,
        "trials": [
            make_trial(0, "standard", ("standard", 0, 100)),
            make_trial(1, "deviant", ("deviant", 0, 100)),
            make_trial(2, "omission"),
            make_trial(3, "mixed", ("noise", 0, 50), ("clicks", 50, 100)),
        ],
    }
