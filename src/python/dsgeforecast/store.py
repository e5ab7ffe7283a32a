"""
Persistence adapters used by the forecast driver.

Inputs are read as bundles of named matrices ("paramsmode" -> {"params": ...},
"mhsave" -> {"params", "TTT", "RRR", "CCC", "zend"}). Outputs are written one
named matrix per key.
"""
import logging
import os

import numpy as np

logger = logging.getLogger(__name__)


class ForecastStore:
    def get(self, name):
        """
        Returns the bundle stored under name as a dict of arrays.
        Raises KeyError if it does not exist.
        """
        raise NotImplementedError

    def put(self, key, name, array):
        raise NotImplementedError


class MemoryStore(ForecastStore):
    def __init__(self, inputs=None):
        self.inputs = {k: dict(v) for k, v in (inputs or {}).items()}
        self.outputs = {}

    def get(self, name):
        if name not in self.inputs:
            raise KeyError(name)
        return {k: np.asarray(v) for k, v in self.inputs[name].items()}

    def put(self, key, name, array):
        self.outputs[key] = {name: np.array(array)}

    def __getitem__(self, key):
        return next(iter(self.outputs[key].values()))

    def __contains__(self, key):
        return key in self.outputs

    def keys(self):
        return self.outputs.keys()


class DirectoryStore(ForecastStore):
    """
    Reads <input_dir>/<name>.npz, writes <output_dir>/<key>.npz with a single
    dataset named after the result.
    """
    def __init__(self, input_dir, output_dir=None):
        self.input_dir = input_dir
        self.output_dir = output_dir or input_dir

    def get(self, name):
        path = os.path.join(self.input_dir, f"{name}.npz")
        if not os.path.exists(path):
            raise KeyError(path)
        with np.load(path) as f:
            return {k: f[k] for k in f.files}

    def put(self, key, name, array):
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, f"{key}.npz")
        np.savez(path, **{name: array})
        logger.debug("Wrote %s", path)

    def save_input(self, name, **arrays):
        os.makedirs(self.input_dir, exist_ok=True)
        np.savez(os.path.join(self.input_dir, f"{name}.npz"), **arrays)
