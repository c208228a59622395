import math
import warnings
from datetime import datetime

import numpy as np
from joblib import Parallel, delayed
from progress.bar import Bar

from ..config import get_from_config
from ..error import (
    BufferOverflowError,
    InvalidParameterError,
    OverflowTruncationWarning,
    StimSeqWarning,
    UnknownStimulusError,
)
from ..generators import GeneratorContext, get_generator
from ..generators.dsp import n_channels as routing_width
from ..utils import (
    bytes_to_megabytes,
    get_logger,
    log_time_taken,
    organize_by_key,
    round_half_up,
    sha256_bytes,
)
from ..validation import CustomValidators
from . import sequence_file
from .element_table import ElementTable
from .sequence_file import MANIFEST_VERSION, Event, Manifest, SequenceFile, TrialTableRow

logger = get_logger()

DEFAULT_N_CHANNELS = 2
MAX_TTL_CODE = 255

# Tolerance for rounding error in the ms-to-samples product before taking the ceiling.
CEIL_EPSILON = 1e-9


class CompilerCore:
    """
    Renders an element table into a :class:`~stimseq.compilation.sequence_file.SequenceFile`.

    Compilation runs in three phases.

    1. Every ``stimulus_ref`` is looked up and dispatched to a generator,
       so unknown references fail before any audio is produced.
    2. Generator parameters are resolved one row at a time, in table order.
       This is the only phase that draws from RNG streams.
    3. The rows are rendered (optionally on a thread pool, see ``n_jobs``)
       and then mixed into the output buffer strictly in table order,
       so the result and its hash do not depend on ``n_jobs``.

    Parameters
    ----------

    min_buffer_ms, padding_ms, ttl_pulse_samples, overflow_policy, n_jobs :
        Override the configuration values of the same names.
        ``overflow_policy`` is ``"lenient"`` (truncate the element and warn)
        or ``"strict"`` (raise :class:`~stimseq.error.BufferOverflowError`).
    """

    def __init__(
        self,
        min_buffer_ms=None,
        padding_ms=None,
        ttl_pulse_samples=None,
        overflow_policy=None,
        n_jobs=None,
    ):
        self.min_buffer_ms = self._setting(min_buffer_ms, "min_buffer_ms")
        self.padding_ms = self._setting(padding_ms, "padding_ms")
        self.ttl_pulse_samples = self._setting(ttl_pulse_samples, "ttl_pulse_samples")
        self.overflow_policy = self._setting(overflow_policy, "overflow_policy")
        self.n_jobs = self._setting(n_jobs, "n_jobs")

        if self.overflow_policy not in ["lenient", "strict"]:
            raise ValueError(f"Invalid overflow_policy: {self.overflow_policy!r}")

    @staticmethod
    def _setting(value, key):
        return get_from_config(key) if value is None else value

    @log_time_taken
    def compile(
        self, element_table, stimulus_library, fs_hz=None, context: GeneratorContext = None
    ) -> SequenceFile:
        if context is None:
            context = GeneratorContext.create(fs_hz)
        if fs_hz is None:
            fs_hz = context.fs_hz
        if not math.isclose(fs_hz, context.fs_hz):
            raise ValueError(
                f"fs_hz ({fs_hz}) does not match the generator context ({context.fs_hz})."
            )

        table = ElementTable.coerce(element_table)
        recorded = []

        jobs = self.resolve_references(table, stimulus_library)

        buffer_samples = self.compute_buffer_size(table, fs_hz)
        n_channels = self.determine_n_channels(table, stimulus_library)
        audio = np.zeros((buffer_samples, n_channels), dtype=np.float32)
        ttl = np.zeros(buffer_samples, dtype=np.uint8)

        logger.info(
            "Compiling %i elements into %i samples x %i channels at %g Hz.",
            len(table),
            buffer_samples,
            n_channels,
            fs_hz,
        )

        realized = self.resolve_parameters(jobs, context)
        rendered = Parallel(n_jobs=self.n_jobs, backend="threading")(
            delayed(generator.render)(params, context)
            for (generator, _), params in zip(jobs, realized)
        )

        events = []
        for i, (row, (element_audio, metadata)) in enumerate(zip(table, rendered)):
            onset_sample = round_half_up(row.absolute_onset_ms / 1000 * fs_hz)
            self.mix(audio, element_audio, onset_sample, row, recorded)
            recorded += [f"{row.stimulus_ref}: {w}" for w in metadata.get("warnings", [])]

            code = self.ttl_code(row, i)
            ttl[onset_sample : onset_sample + self.ttl_pulse_samples] = code

            events.append(
                Event(
                    sample_index=onset_sample,
                    time_ms=float(row.absolute_onset_ms),
                    trial_index=int(row.trial_index),
                    element_index=int(row.element_index),
                    code=code,
                )
            )

        trial_table = self.build_trial_table(table)
        manifest = Manifest(
            version=MANIFEST_VERSION,
            fs_hz=float(fs_hz),
            n_channels=n_channels,
            n_trials=len(trial_table),
            n_elements=len(table),
            duration_samples=buffer_samples,
            duration_ms=buffer_samples / fs_hz * 1000,
            compiled_at=datetime.now().isoformat(timespec="seconds"),
            audio_hash=self.compute_audio_hash(audio),
        )

        if recorded:
            logger.warning("Compilation finished with %i warning(s).", len(recorded))
        logger.info("Compilation complete. Duration: %.2f s.", manifest.duration_ms / 1000)

        return SequenceFile(
            audio=audio,
            ttl=ttl,
            events=events,
            trial_table=trial_table,
            element_table=table,
            manifest=manifest,
            warnings=recorded,
            provenance={
                "seed_record": context.rng_manager.get_seed_record(),
                "realized_params": realized,
            },
        )

    def resolve_references(self, table: ElementTable, stimulus_library):
        jobs = []
        for row in table:
            if row.stimulus_ref not in stimulus_library:
                raise UnknownStimulusError(
                    f"Stimulus reference {row.stimulus_ref!r} "
                    f"(trial {row.trial_index}) is not in the stimulus library."
                )
            definition = stimulus_library[row.stimulus_ref]
            jobs.append((get_generator(definition.get("type")), definition))
        return jobs

    def resolve_parameters(self, jobs, context):
        if not jobs:
            return []
        realized = []
        with Bar("Resolving stimulus parameters", max=len(jobs)) as bar:
            for generator, definition in jobs:
                realized.append(generator.sample_parameters(definition, context))
                bar.next()
        return realized

    def mix(self, audio, element_audio, onset_sample, row, recorded):
        """
        Adds ``element_audio`` into ``audio`` starting at ``onset_sample``.
        """
        buffer_samples, n_channels = audio.shape
        n_samples, element_channels = element_audio.shape

        if onset_sample + n_samples > buffer_samples:
            message = (
                f"Element {row.stimulus_ref!r} (trial {row.trial_index}) ends at sample "
                f"{onset_sample + n_samples}, beyond the buffer ({buffer_samples} samples); "
                "truncating."
            )
            if self.overflow_policy == "strict":
                raise BufferOverflowError(message)
            warnings.warn(message, OverflowTruncationWarning)
            recorded.append(message)
            n_samples = max(0, buffer_samples - onset_sample)

        if element_channels > n_channels:
            message = (
                f"Element {row.stimulus_ref!r} has {element_channels} channels but the "
                f"sequence has {n_channels}; dropping the extra channels."
            )
            warnings.warn(message, StimSeqWarning)
            recorded.append(message)

        width = min(element_channels, n_channels)
        audio[onset_sample : onset_sample + n_samples, :width] += element_audio[
            :n_samples, :width
        ]

    def ttl_code(self, row, row_position: int) -> int:
        if row.ttl_code is None:
            # 1-based row index, wrapped to fit the 8-bit sync line.
            return row_position % MAX_TTL_CODE + 1
        if not 1 <= row.ttl_code <= MAX_TTL_CODE:
            raise InvalidParameterError(
                f"ttl_code must be between 1 and {MAX_TTL_CODE} (got {row.ttl_code})."
            )
        return int(row.ttl_code)

    def compute_buffer_size(self, element_table, fs_hz) -> int:
        table = ElementTable.coerce(element_table)
        if table.is_empty:
            return round_half_up(self.min_buffer_ms / 1000 * fs_hz)
        duration_ms = max(table.end_ms() + self.padding_ms, self.min_buffer_ms)
        return math.ceil(duration_ms / 1000 * fs_hz - CEIL_EPSILON)

    def determine_n_channels(self, element_table, stimulus_library) -> int:
        table = ElementTable.coerce(element_table)
        if table.is_empty:
            return DEFAULT_N_CHANNELS
        definition = stimulus_library.get(table[0].stimulus_ref)
        if definition is None or definition.get("routing") is None:
            return DEFAULT_N_CHANNELS
        return routing_width(definition["routing"])

    def build_trial_table(self, element_table):
        groups = organize_by_key(element_table, key=lambda row: row.trial_index)
        return [
            TrialTableRow(
                trial_index=trial_index,
                label=groups[trial_index][0].label,
                n_elements=len(groups[trial_index]),
            )
            for trial_index in sorted(groups)
        ]

    def compute_audio_hash(self, audio) -> str:
        return sha256_bytes(np.ascontiguousarray(audio, dtype=np.float32))

    def estimate_budget(self, element_table, stimulus_library, fs_hz=None) -> dict:
        """
        Predicts the size of the compiled buffers without rendering anything.
        """
        if fs_hz is None:
            fs_hz = get_from_config("fs_hz")
        buffer_samples = self.compute_buffer_size(element_table, fs_hz)
        n_channels = self.determine_n_channels(element_table, stimulus_library)
        n_bytes = buffer_samples * n_channels * np.dtype(np.float32).itemsize + buffer_samples
        return {
            "duration_samples": buffer_samples,
            "n_channels": n_channels,
            "estimated_samples": buffer_samples * n_channels,
            "estimated_memory_mb": bytes_to_megabytes(n_bytes),
        }

    def check_budget(self, element_table, stimulus_library, budget, fs_hz=None):
        """
        Compares :meth:`estimate_budget` against limits such as
        ``{"max_memory_mb": 500, "max_samples": 1e8}``.
        Returns ``(valid, errors)``.
        """
        estimate = self.estimate_budget(element_table, stimulus_library, fs_hz)
        return CustomValidators.validate_budget({**estimate, "budget": budget})

    def write_hdf5(self, seq_file: SequenceFile, path):
        return sequence_file.write_hdf5(seq_file, path)

    def read_hdf5(self, path) -> SequenceFile:
        return sequence_file.read_hdf5(path)
