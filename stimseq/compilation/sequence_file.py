"""
The compiled artifact and its binary container.

A :class:`SequenceFile` is written to (and read from) an HDF5 file with the layout::

    /audio                  float32 [samples, channels]
    /ttl                    uint8   [samples]
    /events/sample_index    int64
    /events/time_ms         float64
    /events/trial_index     int64
    /events/element_index   int64
    /events/code            uint8

Root attributes hold the manifest fields.
The provenance record (seed record and realized parameters) is stored as a
jsonpickle string in the scalar dataset ``/provenance``.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import List

import h5py
import numpy as np

from ..serialize import serialize, unserialize
from ..utils import get_logger, json_to_data_frame, log_time_taken, make_parents
from .element_table import ElementTable

logger = get_logger()

MANIFEST_VERSION = "v1.0"

event_dtypes = {
    "sample_index": np.int64,
    "time_ms": np.float64,
    "trial_index": np.int64,
    "element_index": np.int64,
    "code": np.uint8,
}


@dataclass(frozen=True)
class Event:
    sample_index: int
    time_ms: float
    trial_index: int
    element_index: int
    code: int


@dataclass(frozen=True)
class TrialTableRow:
    trial_index: int
    label: str
    n_elements: int


@dataclass(frozen=True)
class Manifest:
    version: str
    fs_hz: float
    n_channels: int
    n_trials: int
    n_elements: int
    duration_samples: int
    duration_ms: float
    compiled_at: str
    audio_hash: str

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_attrs(cls, attrs):
        casts = {
            "version": str,
            "fs_hz": float,
            "n_channels": int,
            "n_trials": int,
            "n_elements": int,
            "duration_samples": int,
            "duration_ms": float,
            "compiled_at": str,
            "audio_hash": str,
        }
        return cls(**{key: cast(attrs[key]) for key, cast in casts.items()})

    def equals(self, other, ignore=("compiled_at",)):
        """
        Field-by-field comparison that skips the compilation timestamp.
        """
        return all(
            getattr(self, f.name) == getattr(other, f.name)
            for f in fields(self)
            if f.name not in ignore
        )


@dataclass(frozen=True)
class SequenceFile:
    """
    A compiled stimulus sequence.

    Attributes
    ----------

    audio :
        ``float32`` array of shape ``[samples, channels]``.

    ttl :
        ``uint8`` array of shape ``[samples]`` holding the sync codes.

    events :
        One :class:`Event` per placed element, in schedule order.

    trial_table :
        One :class:`TrialTableRow` per trial that contains elements,
        sorted by trial index.

    element_table :
        The schedule the sequence was compiled from.
        Not stored in the binary container; empty after :func:`read_hdf5`.

    manifest :
        Provenance record.

    warnings :
        Messages for every recoverable problem met during compilation.

    provenance :
        ``{"seed_record": ..., "realized_params": [...]}``: the RNG seeds of the
        session and the concrete parameters of every element, in schedule order.
    """

    audio: np.ndarray
    ttl: np.ndarray
    events: List[Event]
    trial_table: List[TrialTableRow]
    element_table: ElementTable
    manifest: Manifest
    warnings: List[str] = field(default_factory=list)
    provenance: dict = field(default_factory=dict)

    def __post_init__(self):
        self.audio.setflags(write=False)
        self.ttl.setflags(write=False)

    def events_data_frame(self):
        return json_to_data_frame(
            [asdict(event) for event in self.events], columns=list(event_dtypes)
        ).astype(event_dtypes)

    def trial_table_data_frame(self):
        return json_to_data_frame(
            [asdict(row) for row in self.trial_table],
            columns=["trial_index", "label", "n_elements"],
        )

    def write_hdf5(self, path):
        return write_hdf5(self, path)


@log_time_taken
def write_hdf5(seq_file: SequenceFile, path):
    make_parents(path)
    with h5py.File(path, "w") as file:
        file.create_dataset("audio", data=np.asarray(seq_file.audio, dtype=np.float32))
        file.create_dataset("ttl", data=np.asarray(seq_file.ttl, dtype=np.uint8))

        events = file.create_group("events")
        for name, dtype in event_dtypes.items():
            events.create_dataset(
                name,
                data=np.array([getattr(e, name) for e in seq_file.events], dtype=dtype),
            )

        for key, value in seq_file.manifest.to_dict().items():
            file.attrs[key] = value

        file.create_dataset("provenance", data=serialize(seq_file.provenance))

    logger.info("Wrote sequence file to %s.", path)
    return path


@log_time_taken
def read_hdf5(path) -> SequenceFile:
    with h5py.File(path, "r") as file:
        audio = file["audio"][()]
        ttl = file["ttl"][()]
        columns = {name: file["events"][name][()] for name in event_dtypes}
        manifest = Manifest.from_attrs(dict(file.attrs))
        provenance = (
            unserialize(file["provenance"].asstr()[()]) if "provenance" in file else {}
        )

    events = [
        Event(
            sample_index=int(columns["sample_index"][i]),
            time_ms=float(columns["time_ms"][i]),
            trial_index=int(columns["trial_index"][i]),
            element_index=int(columns["element_index"][i]),
            code=int(columns["code"][i]),
        )
        for i in range(len(columns["sample_index"]))
    ]

    return SequenceFile(
        audio=audio,
        ttl=ttl,
        events=events,
        trial_table=[],
        element_table=ElementTable(),
        manifest=manifest,
        provenance=provenance,
    )
