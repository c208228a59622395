import hashlib
from typing import Dict, Optional

import numpy as np

from ..config import get_from_config
from ..error import StreamNotFoundError
from ..utils import get_logger

logger = get_logger()

SEED_MODULUS = 2**31 - 1
LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345


def legacy_name_hash(text: str) -> int:
    return sum(ord(char) for char in text)


def sha256_name_hash(text: str) -> int:
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")


name_hashes = {
    "legacy": legacy_name_hash,
    "sha256": sha256_name_hash,
}


def make_stream(seed: int) -> np.random.Generator:
    return np.random.Generator(np.random.MT19937(seed))


class RNGStreamManager:
    """
    Issues named, deterministic random number streams derived from a single master seed.

    Each stream is a :class:`numpy.random.Generator`. Asking for the same name twice
    returns the same (stateful) generator, so consecutive draws continue to advance it.
    Because seeds are derived from the master seed, the stream name and the order
    in which streams are first requested, a whole session can be reproduced
    from ``master_seed`` alone.

    Parameters
    ----------

    master_seed :
        Master seed for all derived streams. If omitted, one is drawn from
        operating-system entropy; it is still recorded in :meth:`get_seed_record`.

    derivation :
        How stream names are hashed before being combined with the running counter.
        ``"sha256"`` mixes the name thoroughly; ``"legacy"`` sums character codes,
        matching the seed values of older sessions.
        Defaults to the ``seed_derivation`` configuration value.
    """

    def __init__(self, master_seed: Optional[int] = None, derivation: Optional[str] = None):
        if master_seed is None:
            master_seed = int(np.random.SeedSequence().generate_state(1)[0]) % SEED_MODULUS
            logger.info("No master seed provided, using %i.", master_seed)
        if derivation is None:
            derivation = get_from_config("seed_derivation")
        if derivation not in name_hashes:
            raise ValueError(
                f"Unknown seed derivation {derivation!r}, expected one of {list(name_hashes)}."
            )

        self.master_seed = int(master_seed)
        self.derivation = derivation
        self._streams: Dict[str, np.random.Generator] = {}
        self._stream_seeds: Dict[str, int] = {}
        self._next_seed = self._initial_counter()

    def _initial_counter(self) -> int:
        master_stream = make_stream(self.master_seed)
        return int(master_stream.integers(0, SEED_MODULUS, endpoint=True))

    def get_stream(self, stream_name: str) -> np.random.Generator:
        if stream_name in self._streams:
            return self._streams[stream_name]

        seed = self.derive_seed(stream_name)
        stream = make_stream(seed)

        self._streams[stream_name] = stream
        self._stream_seeds[stream_name] = seed
        return stream

    def derive_seed(self, stream_name: str) -> int:
        """
        Derives the seed for a new stream. Every call advances the internal
        counter with a linear congruential step, so two names whose hashes
        collide still receive different seeds.
        """
        hash_value = name_hashes[self.derivation](stream_name + str(self.master_seed))
        seed = (hash_value + self._next_seed) % SEED_MODULUS

        self._next_seed = (self._next_seed * LCG_MULTIPLIER + LCG_INCREMENT) % SEED_MODULUS
        return seed

    def reset_stream(self, stream_name: str):
        if stream_name not in self._streams:
            raise StreamNotFoundError(f'Stream "{stream_name}" does not exist.')

        self._streams[stream_name] = make_stream(self._stream_seeds[stream_name])
        return self._streams[stream_name]

    def get_seed_record(self) -> dict:
        return {
            "master_seed": self.master_seed,
            "stream_seeds": dict(self._stream_seeds),
        }

    def get_stream_names(self):
        return list(self._streams.keys())

    def clear_all(self):
        self._streams = {}
        self._stream_seeds = {}
        self._next_seed = self._initial_counter()
