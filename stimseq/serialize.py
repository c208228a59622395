import jsonpickle
import jsonpickle.ext.numpy as jsonpickle_numpy

# Realized parameters often hold numpy scalars and arrays.
jsonpickle_numpy.register_handlers()


def serialize(x):
    return jsonpickle.encode(x)


def unserialize(x):
    return jsonpickle.decode(x)
