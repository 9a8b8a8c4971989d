"""
Run configuration
=================
A run is described by a JSON document:

    {
        "model": "tokamak",
        "parameters": {"q": 1.4, "shat": 0.8, "tau": 1.0, "beta_e": 0.005},
        "grid": {"length": 10.0, "npoints": 32, "centered": true},
        "solver": {"tol": 1e-6, "iteration_step_limit": 50,
                   "indicator": "inverse_trace", "threads": 4},
        "sweep": {"parameter": "eta_i", "start": 1.0, "stop": 4.0, "num": 13}
    }

Every section is optional. Without solver.lambda0 ("[re, im]" or a number)
the search starts from the estimate of the model. The older whitespace
separated input record (``emme.in``) is still accepted by read_legacy_input().
"""
import json
import logging
from dataclasses import MISSING, dataclass, field, fields
from pathlib import Path
from typing import Optional

import numpy as np

from emme.errors import ConfigError, InvalidArgument
from emme.grid import Grid
from emme.indicators import INDICATORS
from emme.physics import MODELS, PlasmaParameters, Stellarator

logger = logging.getLogger(__name__)

# order of the fields in an emme.in record
LEGACY_FIELDS = [
    ('q', float), ('shat', float), ('tau', float), ('epsilon_n', float),
    ('eta_i', float), ('b_theta', float), ('R', float), ('vt', float),
    ('length', float), ('theta', float), ('npoints', int), ('iteration_step_limit', int),
]


def _to_complex(value, key):
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a number or [re, im], got {value!r}")
    if isinstance(value, (int, float, complex)):
        return complex(value)
    if isinstance(value, (list, tuple)) and len(value) == 2 \
            and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
        return complex(value[0], value[1])
    raise ConfigError(f"'{key}' must be a number or [re, im], got {value!r}")


def _to_float(value, key):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    return float(value)


def _to_int(value, key):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    return value


def _to_bool(value, key):
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false, got {value!r}")
    return value


def _to_str(value, key):
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string, got {value!r}")
    return value


def _optional(convert):
    def wrapped(value, key):
        return None if value is None else convert(value, key)
    return wrapped


def _parse_section(cls, data, section, converters):
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"section '{section}' must be an object, got {type(data).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown key(s) in '{section}': {', '.join(unknown)}")
    kwargs = {k: converters[k](v, f"{section}.{k}") for k, v in data.items()}
    missing = [f.name for f in fields(cls)
               if f.name not in kwargs and f.default is MISSING and f.default_factory is MISSING]
    if missing:
        raise ConfigError(f"missing key(s) in '{section}': {', '.join(missing)}")
    return cls(**kwargs)


@dataclass
class GridConfig:
    length: float = 10.0
    npoints: int = 32
    centered: bool = False

    def build(self):
        if self.centered:
            return Grid.centered(self.length, self.npoints)
        return Grid(self.length, self.npoints)


@dataclass
class SolverConfig:
    lambda0: Optional[complex] = None
    lambda1: Optional[complex] = None
    tol: float = 1e-6
    iteration_step_limit: int = 50
    indicator: str = 'inverse_trace'
    threads: Optional[int] = None
    null_space_tol: Optional[float] = None

    def __post_init__(self):
        if self.indicator not in INDICATORS:
            raise ConfigError(f"solver.indicator must be one of {sorted(INDICATORS)}, got '{self.indicator}'")
        if self.threads is not None and self.threads < 1:
            raise ConfigError(f"solver.threads must be at least 1, got {self.threads}")


@dataclass
class SweepConfig:
    parameter: str
    start: float
    stop: float
    num: int = 11

    def __post_init__(self):
        if self.num < 1:
            raise ConfigError(f"sweep.num must be at least 1, got {self.num}")

    def values(self):
        return np.linspace(self.start, self.stop, self.num)


_GRID_CONVERTERS = {'length': _to_float, 'npoints': _to_int, 'centered': _to_bool}
_SOLVER_CONVERTERS = {
    'lambda0': _optional(_to_complex),
    'lambda1': _optional(_to_complex),
    'tol': _to_float,
    'iteration_step_limit': _to_int,
    'indicator': _to_str,
    'threads': _optional(_to_int),
    'null_space_tol': _optional(_to_float),
}
_SWEEP_CONVERTERS = {'parameter': _to_str, 'start': _to_float, 'stop': _to_float, 'num': _to_int}
_STELLARATOR_CONVERTERS = {
    'eta_k': _to_float, 'lh': _to_int, 'mh': _to_int,
    'epsilon_h_t': _to_float, 'alpha_0': _to_float, 'r_over_R': _to_float,
}


def _parameter_converters(model):
    converters = {}
    for f in fields(PlasmaParameters):
        if f.init:
            converters[f.name] = _to_int if f.type in (int, 'int') else _to_float
    if model == 'stellarator':
        converters.update(_STELLARATOR_CONVERTERS)
    return converters


@dataclass
class RunConfig:
    model: str = 'tokamak'
    parameters: dict = field(default_factory=dict)
    grid: GridConfig = field(default_factory=GridConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)
    sweep: Optional[SweepConfig] = None

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ConfigError("configuration must be a JSON object")
        unknown = sorted(set(data) - {'model', 'parameters', 'grid', 'solver', 'sweep'})
        if unknown:
            raise ConfigError(f"unknown top-level key(s): {', '.join(unknown)}")

        model = _to_str(data.get('model', 'tokamak'), 'model')
        if model not in MODELS:
            raise ConfigError(f"model must be one of {sorted(MODELS)}, got '{model}'")

        parameters = data.get('parameters') or {}
        if not isinstance(parameters, dict):
            raise ConfigError("section 'parameters' must be an object")
        converters = _parameter_converters(model)
        unknown = sorted(set(parameters) - set(converters))
        if unknown:
            raise ConfigError(f"unknown key(s) in 'parameters': {', '.join(unknown)}")
        parameters = {k: converters[k](v, f"parameters.{k}") for k, v in parameters.items()}

        sweep = data.get('sweep')
        return cls(
            model=model,
            parameters=parameters,
            grid=_parse_section(GridConfig, data.get('grid'), 'grid', _GRID_CONVERTERS),
            solver=_parse_section(SolverConfig, data.get('solver'), 'solver', _SOLVER_CONVERTERS),
            sweep=None if sweep is None else _parse_section(SweepConfig, sweep, 'sweep', _SWEEP_CONVERTERS),
        )

    def build_model(self):
        """Instantiate the physics model named by `model`."""
        own = Stellarator.OWN_NAMES if self.model == 'stellarator' else ()
        physical = {k: v for k, v in self.parameters.items() if k not in own}
        extras = {k: v for k, v in self.parameters.items() if k in own}
        try:
            return MODELS[self.model](PlasmaParameters(**physical), **extras)
        except InvalidArgument as exc:
            raise ConfigError(f"invalid physical parameters: {exc}") from exc

    def build_grid(self):
        try:
            return self.grid.build()
        except InvalidArgument as exc:
            raise ConfigError(f"invalid grid: {exc}") from exc


def read_json_config(path):
    path = Path(path)
    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON ({exc})") from exc
    return RunConfig.from_dict(data)


def read_legacy_input(path):
    """
    Read an emme.in record:

        q shat tau epsilon_n eta_i b_theta R vt length theta npoints iteration_step_limit

    Grid length/npoints and the step limit are taken from the record as well;
    the search starts from the model estimate.
    """
    path = Path(path)
    tokens = path.read_text(encoding='utf-8').split()
    if len(tokens) < len(LEGACY_FIELDS):
        raise ConfigError(f"{path}: expected {len(LEGACY_FIELDS)} values, found {len(tokens)}")

    values = {}
    for (name, kind), token in zip(LEGACY_FIELDS, tokens):
        try:
            values[name] = kind(token)
        except ValueError:
            raise ConfigError(f"{path}: cannot read '{name}' from {token!r}") from None

    return RunConfig(
        model='tokamak',
        parameters=values,
        grid=GridConfig(length=values['length'], npoints=values['npoints']),
        solver=SolverConfig(iteration_step_limit=values['iteration_step_limit']),
    )


def load_config(path):
    """Read a run configuration, JSON for *.json and the legacy record otherwise."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"configuration file not found: {path}")
    if path.suffix.lower() == '.json':
        config = read_json_config(path)
    else:
        config = read_legacy_input(path)
    logger.info("Loaded %s configuration from %s", config.model, path)
    return config
