import json
import os

from .utils import NoArgumentProvided, get_logger

logger = get_logger()

CONFIG_PATH_ENV_VAR = "STIMSEQ_CONFIG"
ENV_VAR_PREFIX = "STIMSEQ_"

config_defaults = {
    "fs_hz": 48000.0,
    "min_buffer_ms": 1000.0,
    "padding_ms": 100.0,
    "ttl_pulse_samples": 10,
    "overflow_policy": "lenient",
    "seed_derivation": "sha256",
    "probability_tolerance": 0.001,
    "n_jobs": 1,
    "validate_fields": True,
    "schema_dir": None,
}

valid_overflow_policies = ["lenient", "strict"]
valid_seed_derivations = ["sha256", "legacy"]


class Configuration:
    """
    Holds the settings that parameterize compilation
    (sample rate, buffer padding, TTL pulse width, overflow policy, ...).

    Values are layered: the built-in ``config_defaults``,
    then an optional JSON file, then ``STIMSEQ_<KEY>`` environment variables,
    then anything set explicitly with :meth:`set`.
    The API mirrors the Dallinger configuration object:
    check ``config.ready`` and call ``config.load()`` before reading values.
    """

    def __init__(self):
        self.ready = False
        self.data = {}
        self.source_path = None

    def load(self, path=None):
        data = dict(config_defaults)

        if path is None:
            path = os.environ.get(CONFIG_PATH_ENV_VAR)

        if path is not None:
            data.update(load_json_file(path))
            self.source_path = path

        for key, default in config_defaults.items():
            env_key = ENV_VAR_PREFIX + key.upper()
            if env_key in os.environ:
                data[key] = coerce_value(os.environ[env_key], default)

        check_config(data)
        self.data = data
        self.ready = True
        return self

    def get(self, key, default=NoArgumentProvided):
        if not self.ready:
            self.load()
        try:
            return self.data[key]
        except KeyError:
            if default is NoArgumentProvided:
                raise KeyError(f"Undefined configuration key: {key}")
            return default

    def set(self, key, value):
        if not self.ready:
            self.load()
        data = {**self.data, key: value}
        check_config(data)
        self.data = data

    def extend(self, values: dict):
        for key, value in values.items():
            self.set(key, value)

    def as_dict(self):
        if not self.ready:
            self.load()
        return dict(self.data)


def load_json_file(path):
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Configuration file not found: {path}")
    with open(path, "r") as file:
        try:
            return json.load(file)
        except json.JSONDecodeError as err:
            raise ValueError(f"Failed to parse JSON file {path}: {err}") from err


def coerce_value(raw: str, default):
    if isinstance(default, bool):
        return raw.lower() in ["1", "true", "yes"]
    elif isinstance(default, int):
        return int(raw)
    elif isinstance(default, float):
        return float(raw)
    return raw


def check_config(data):
    if data["overflow_policy"] not in valid_overflow_policies:
        raise ValueError(
            f"overflow_policy must be one of {valid_overflow_policies} "
            f"(got {data['overflow_policy']!r})."
        )
    if data["seed_derivation"] not in valid_seed_derivations:
        raise ValueError(
            f"seed_derivation must be one of {valid_seed_derivations} "
            f"(got {data['seed_derivation']!r})."
        )
    if data["fs_hz"] <= 0:
        raise ValueError("fs_hz must be positive.")
    if data["ttl_pulse_samples"] < 1:
        raise ValueError("ttl_pulse_samples must be at least 1.")


config = Configuration()


def get_config():
    return config


def get_from_config(key):
    config = get_config()
    if not config.ready:
        config.load()

    if key in config_defaults:
        return config.get(key, default=config_defaults[key])
    else:
        return config.get(key)
