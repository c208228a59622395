from typing import Optional

from ..config import get_from_config
from ..sampling import NumericFieldSampler, RNGStreamManager, ScopeManager
from ..utils import round_half_up


class GeneratorContext:
    """
    Everything a stimulus generator may consult while resolving parameters
    and synthesizing audio: the sample rate, the field sampler,
    and the named RNG streams.

    Parameters
    ----------

    fs_hz :
        Sample rate in Hz.

    sampler :
        Resolves numeric field specifications.

    rng_manager :
        Source of named RNG streams; defaults to the sampler's own manager.
    """

    def __init__(
        self,
        fs_hz: float,
        sampler: NumericFieldSampler,
        rng_manager: Optional[RNGStreamManager] = None,
    ):
        if fs_hz is None or fs_hz <= 0:
            raise ValueError(f"fs_hz must be positive (got {fs_hz}).")
        if sampler is None:
            raise ValueError("A NumericFieldSampler must be provided.")
        if rng_manager is None:
            rng_manager = sampler.rng_manager

        self.fs_hz = float(fs_hz)
        self.sampler = sampler
        self.rng_manager = rng_manager

    @classmethod
    def create(cls, fs_hz=None, master_seed=None, validate_fields=None):
        """
        Builds a context around a fresh session:
        a new :class:`~stimseq.sampling.RNGStreamManager` seeded with ``master_seed``
        and an empty :class:`~stimseq.sampling.ScopeManager`.
        """
        if fs_hz is None:
            fs_hz = get_from_config("fs_hz")
        rng_manager = RNGStreamManager(master_seed)
        sampler = NumericFieldSampler(
            rng_manager, ScopeManager(), validate_first=validate_fields
        )
        return cls(fs_hz, sampler, rng_manager)

    @property
    def scope_manager(self) -> ScopeManager:
        return self.sampler.scope_manager

    def sample_field(self, field_spec, param_name: str):
        return self.sampler.sample(field_spec, param_name)

    def get_rng_stream(self, stream_name: str):
        return self.rng_manager.get_stream(stream_name)

    def ms_to_samples(self, duration_ms) -> int:
        return round_half_up(duration_ms * self.fs_hz / 1000)

    def samples_to_ms(self, n_samples) -> float:
        return n_samples / self.fs_hz * 1000
