import contextlib
import hashlib
import logging
import math
import os
import sys
import time
from functools import wraps
from pathlib import Path

import jsonpickle


def get_logger():
    logging.basicConfig(level=logging.INFO)
    return logging.getLogger("stimseq")


logger = get_logger()


class NoArgumentProvided:
    """
    We use this class as a replacement for ``None`` as a default argument,
    to distinguish cases where the user doesn't provide an argument
    from cases where they intentionally provide ``None`` as an argument.
    """

    pass


def log_time_taken(fun):
    @wraps(fun)
    def wrapper(*args, **kwargs):
        start_time = time.monotonic()
        res = fun(*args, **kwargs)
        end_time = time.monotonic()
        time_taken = end_time - start_time
        logger.info("Time taken by %s: %.3f seconds.", fun.__name__, time_taken)
        return res

    return wrapper


def md5_object(x):
    string = jsonpickle.encode(x).encode("utf-8")
    hashed = hashlib.md5(string)
    return str(hashed.hexdigest())


hash_object = md5_object


def sha256_bytes(data) -> str:
    """
    Returns the SHA-256 hex digest of a bytes-like object
    (e.g. the raw buffer of a contiguous numpy array).
    """
    return hashlib.sha256(memoryview(data)).hexdigest()


def round_half_up(x):
    """
    Rounds to the nearest integer, with ties going away from zero.
    Python's built-in ``round`` rounds ties to even, which would place
    e.g. an onset of 2.5 samples at sample 2 rather than 3.
    """
    if x >= 0:
        return int(math.floor(x + 0.5))
    return -int(math.floor(-x + 0.5))


def json_to_data_frame(json_data, columns=None):
    import pandas as pd

    if columns is None:
        columns = []
        for row in json_data:
            [columns.append(key) for key in row.keys() if key not in columns]

    data_frame = pd.DataFrame.from_records(json_data, columns=columns)
    return data_frame


def organize_by_key(lst, key):
    """
    Sorts a list of items into groups.

    Parameters
    ----------
    lst :
        List to sort.

    key :
        Function applied to elements of ``lst`` which defines the grouping key.

    Returns
    -------

    A dictionary keyed by the outputs of ``key``, preserving the order
    in which each key was first seen.

    """
    out = {}
    for obj in lst:
        _key = key(obj)
        if _key not in out:
            out[_key] = []
        out[_key].append(obj)
    return out


def make_parents(path):
    """
    Creates the parent directories for a specified file if they don't exist already.

    Returns
    -------

    The original path.
    """
    Path(os.path.dirname(os.path.abspath(path))).mkdir(parents=True, exist_ok=True)
    return path


def bytes_to_megabytes(bytes):
    return bytes / (1024 * 1024)


@contextlib.contextmanager
def disable_logger():
    logging.disable(sys.maxsize)
    yield
    logging.disable(logging.NOTSET)
