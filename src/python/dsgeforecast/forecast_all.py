"""
Forecast driver: runs filter -> smoother -> forecast -> decompositions for
every combination of input type (parameter draws), conditional data type and
output type, and hands each result matrix to a ForecastStore.

Per (draw, cond_type) the driver computes the union of the requested outputs
once and then writes the files of each output type. Draws that the solver
rejects are skipped and reported; configuration errors abort the run before
any computation starts.
"""
import copy
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

import numpy as np
from numpy.linalg import LinAlgError
from tqdm import tqdm

from .conditional import build_conditional_data
from .errors import DimensionMismatch, NumericalDegeneracy, SolverError
from .filter import smooth
from .forecast import forecast, draw_forecast_shocks, shock_decompositions, deterministic_trend, counterfactuals
from .settings import CondType, InputType, OutputType, ForecastSettings
from .solvers.kalman import kalman_filter
from .system import System, compute_system

logger = logging.getLogger(__name__)

INPUT_FILES = {
    InputType.MODE: "paramsmode",
    InputType.MEAN: "paramsmean",
    InputType.FULL: "mhsave",
    InputType.SUBSET: "mhsave",
}

_FORECAST = ["forecaststates", "forecastobs", "forecastshocks"]

_RESULT_NAMES = {
    OutputType.STATES: ["histstates"],
    OutputType.SHOCKS: ["histshocks"],
    OutputType.SHOCKS_NONSTANDARDIZED: ["histshocksns"],
    OutputType.FORECAST: _FORECAST,
    OutputType.SHOCKDEC: ["shockdecstates", "shockdecobs"],
    OutputType.DETTREND: ["dettrendstates", "dettrendobs"],
    OutputType.COUNTER: ["counterstates", "counterobs"],
    OutputType.SIMPLE: ["histstates"] + _FORECAST,
    OutputType.SIMPLE_COND: ["histstates"] + _FORECAST,
}
_RESULT_NAMES[OutputType.ALL] = list(dict.fromkeys(
    name for output_type, names in _RESULT_NAMES.items() for name in names))

_missing = set(OutputType) - set(_RESULT_NAMES)
if _missing:
    raise RuntimeError(f"No result names defined for output types {sorted(m.value for m in _missing)}")

# states result -> matching pseudo-observable result
_PSEUDO_NAMES = {
    "histstates": "histpseudo",
    "forecaststates": "forecastpseudo",
    "shockdecstates": "shockdecpseudo",
    "dettrendstates": "dettrendpseudo",
    "counterstates": "counterpseudo",
}


def result_names(output_type, pseudo=False):
    names = []
    for name in _RESULT_NAMES[OutputType.parse(output_type)]:
        names.append(name)
        if pseudo and name in _PSEUDO_NAMES:
            names.append(_PSEUDO_NAMES[name])
    return names


def output_key(draw_id, input_type, cond_type, result):
    return f"{draw_id}_para={InputType.parse(input_type)}_cond={CondType.parse(cond_type)}_{result}"


@dataclass(frozen=True)
class ParameterDraw:
    draw_id: str
    params: np.ndarray
    TTT: np.ndarray = None
    RRR: np.ndarray = None
    CCC: np.ndarray = None
    zend: np.ndarray = None

    @property
    def precomputed(self):
        return self.TTT is not None and self.RRR is not None and self.CCC is not None


@dataclass
class ForecastOutput:
    """
    Results for one (draw, cond_type). Only the fields needed by the requested
    output types are filled in; the rest stay None.
    """
    draw_id: str
    cond_type: CondType
    recomputed_system: bool = False
    zend: np.ndarray = None
    loglh: float = None
    histstates: np.ndarray = None
    histshocks: np.ndarray = None
    histshocksns: np.ndarray = None
    histpseudo: np.ndarray = None
    forecaststates: np.ndarray = None
    forecastobs: np.ndarray = None
    forecastshocks: np.ndarray = None
    forecastpseudo: np.ndarray = None
    shockdecstates: np.ndarray = None
    shockdecobs: np.ndarray = None
    shockdecpseudo: np.ndarray = None
    dettrendstates: np.ndarray = None
    dettrendobs: np.ndarray = None
    dettrendpseudo: np.ndarray = None
    counterstates: np.ndarray = None
    counterobs: np.ndarray = None
    counterpseudo: np.ndarray = None

    def get(self, name):
        value = getattr(self, name, None)
        if value is None:
            raise KeyError(f"{name} was not computed for draw {self.draw_id}")
        return value


@dataclass(frozen=True)
class DrawFailure:
    draw_id: str
    input_type: InputType
    cond_type: CondType
    output_types: tuple
    error: str
    eu: list = None


@dataclass
class ForecastReport:
    written: list = field(default_factory=list)
    failures: list = field(default_factory=list)
    skipped: list = field(default_factory=list)

    @property
    def n_failures(self):
        return len(self.failures)


def load_draws(model, store, input_type, settings=None):
    """
    Reads the parameter draws for input_type from the store.

    mode/mean: a single parameter vector; system matrices are recomputed.
    full/subset: every draw of the posterior sample, with the precomputed
    TTT, RRR, CCC and zend when the sample carries them.
    """
    input_type = InputType.parse(input_type)
    settings = settings or ForecastSettings()
    bundle = store.get(INPUT_FILES[input_type])
    n_params = np.shape(bundle["params"])[-1]
    if n_params != len(model.parameters):
        raise DimensionMismatch(
            f"{INPUT_FILES[input_type]} has {n_params} parameters, model has {len(model.parameters)}")

    if input_type.single_draw:
        params = np.asarray(bundle["params"], dtype=float).reshape(-1)
        return [ParameterDraw("draw0000", params)]

    params = np.atleast_2d(np.asarray(bundle["params"], dtype=float))
    inds = range(params.shape[0])
    if input_type == InputType.SUBSET:
        if not settings.subset_inds:
            raise ValueError("input_type=subset requires settings.subset_inds")
        bad = [i for i in settings.subset_inds if not 0 <= i < params.shape[0]]
        if bad:
            raise ValueError(f"subset_inds {bad} out of range for {params.shape[0]} draws")
        inds = settings.subset_inds

    draws = []
    for i in inds:
        draws.append(ParameterDraw(
            f"draw{i:04d}", params[i],
            TTT=bundle["TTT"][i] if "TTT" in bundle else None,
            RRR=bundle["RRR"][i] if "RRR" in bundle else None,
            CCC=bundle["CCC"][i] if "CCC" in bundle else None,
            zend=bundle["zend"][i] if "zend" in bundle else None))
    return draws


def compute_outputs(model, data, draw, cond_type, output_types, settings=None, rng=None):
    """
    Computes every result needed by output_types for one parameter draw.

    Args:
        model: model object; its parameters are set to the draw
        data: observables x periods matrix, already extended with the
            conditional periods for cond_type
        draw: ParameterDraw
        cond_type: CondType of data
        output_types: OutputTypes whose results are required
        settings: ForecastSettings
        rng: numpy Generator for drawn shocks or simulation smoothing

    Returns:
        ForecastOutput
    """
    settings = settings or ForecastSettings()
    cond_type = CondType.parse(cond_type)
    pseudo = settings.forecast_pseudoobservables
    names = set()
    for output_type in output_types:
        names.update(result_names(output_type, pseudo=pseudo))

    need_shockdec = "shockdecstates" in names
    need_dettrend = "dettrendstates" in names
    need_counter = "counterstates" in names
    need_smooth = any(n.startswith("hist") for n in names) or need_shockdec or need_dettrend or need_counter
    need_forecast = any(n.startswith("forecast") for n in names) or need_shockdec or need_counter or need_dettrend

    out = ForecastOutput(draw_id=draw.draw_id, cond_type=cond_type)

    ## 1. Parameters and system
    model.update(draw.params)
    if draw.precomputed:
        system = System.from_solution(model, draw.TTT, draw.RRR, draw.CCC)
    else:
        system = compute_system(model)
        out.recomputed_system = True
    if pseudo:
        system.require("ZZ_pseudo", "DD_pseudo")

    ## 2. Filter
    # A precomputed zend only applies to unconditional data with no smoothed history
    zend = draw.zend if cond_type == CondType.NONE and not need_smooth else None
    kal = None
    if zend is None:
        kal = kalman_filter(data, system, n_presample=settings.n_presample_periods, include_presample=True)
        out.loglh = kal.loglh
        zend = kal.zend
    out.zend = np.asarray(zend, dtype=float)

    ## 3. Smooth
    smoothed = None
    if need_smooth:
        smoothed = smooth(data, system, kal, settings=settings, rng=rng)
        out.histstates = smoothed.states
        out.histshocks = smoothed.shocks_standardized
        out.histshocksns = smoothed.shocks
        out.histpseudo = smoothed.pseudo
        # the forecast starts where the smoothed history ends
        out.zend = smoothed.states[:, -1].copy()

    ## 4. Project
    horizon = settings.forecast_horizons
    if need_forecast:
        shocks = draw_forecast_shocks(system.QQ, horizon, rng) if settings.forecast_draw_shocks else None
        states, obs, fpseudo, shocks = forecast(system, out.zend, horizon, shocks)
        out.forecaststates, out.forecastobs, out.forecastshocks = states, obs, shocks
        out.forecastpseudo = fpseudo if pseudo else None

    ## 5. Decompose (history followed by the forecast horizon)
    if need_shockdec:
        states, obs, dpseudo = shock_decompositions(system, smoothed.shocks, out.forecastshocks)
        out.shockdecstates, out.shockdecobs = states, obs
        out.shockdecpseudo = dpseudo if pseudo else None
    if need_dettrend:
        n_periods = smoothed.states.shape[1] + horizon
        states, obs, dpseudo = deterministic_trend(system, smoothed.initial_state, n_periods)
        out.dettrendstates, out.dettrendobs = states, obs
        out.dettrendpseudo = dpseudo if pseudo else None
    if need_counter:
        states, obs, dpseudo = counterfactuals(system, smoothed.initial_state, smoothed.shocks,
                                               out.forecastshocks)
        out.counterstates, out.counterobs = states, obs
        out.counterpseudo = dpseudo if pseudo else None

    return out


def _unit_rng(settings, input_index, cond_index, draw_index):
    if settings.seed is None:
        return np.random.default_rng()
    return np.random.default_rng([settings.seed, input_index, cond_index, draw_index])


def _run_unit(model, data, draw, input_type, cond_type, output_types, settings, rng):
    """
    One (draw, cond_type) unit on its own copy of the model. Solver and linear
    algebra failures are returned as DrawFailure instead of raised.
    """
    unit_model = copy.deepcopy(model)
    try:
        return compute_outputs(unit_model, data, draw, cond_type, output_types, settings=settings, rng=rng)
    except LinAlgError as e:
        error = NumericalDegeneracy(f"Linear algebra failure: {e}", eu=[-3, -3])
    except SolverError as e:
        error = e
    logger.warning("Skipping %s (para=%s, cond=%s): %s", draw.draw_id, input_type, cond_type, error)
    return DrawFailure(draw.draw_id, input_type, cond_type, tuple(output_types), str(error), error.eu)


def _emit(store, out, input_type, output_types, settings, report):
    keys = {}
    for output_type in output_types:
        for name in result_names(output_type, pseudo=settings.forecast_pseudoobservables):
            keys[output_key(out.draw_id, input_type, out.cond_type, name)] = name
    for key, name in keys.items():
        store.put(key, name, out.get(name))
        report.written.append(key)


def forecast_all(model, data, store, cond_types=(), input_types=(), output_types=(), settings=None,
                 cond_inputs=None):
    """
    Runs the forecast for every combination of input type, conditional type
    and output type.

    Args:
        model: model object
        data: observables x periods matrix of historical data
        store: ForecastStore with the parameter draws; receives the outputs
        cond_types: any of none, semi, full
        input_types: any of mode, mean, full, subset
        output_types: any of states, shocks, shocks_nonstandardized, forecast,
            shockdec, dettrend, counter, simple, simple_cond, all
        settings: ForecastSettings
        cond_inputs: ConditionalInputs for the semi and full cases

    Returns:
        ForecastReport with the written keys, failed draws and skipped
        combinations.
    """
    settings = settings or ForecastSettings()
    cond_types = CondType.parse_all(cond_types)
    input_types = InputType.parse_all(input_types)
    output_types = OutputType.parse_all(output_types)

    data = np.asarray(data, dtype=float)
    if data.ndim != 2 or data.shape[0] != model.n_observables:
        raise DimensionMismatch(f"Data has shape {data.shape}; model has {model.n_observables} observables")

    # Conditional data does not depend on the draw: build it once per cond_type
    cond_data = {cond_type: build_conditional_data(data, cond_type, model.observables.keys(), cond_inputs)
                 for cond_type in cond_types}

    report = ForecastReport()
    for i_input, input_type in enumerate(input_types):
        draws = load_draws(model, store, input_type, settings)
        logger.info("Forecasting %d draw(s) for para=%s", len(draws), input_type)

        for i_cond, cond_type in enumerate(cond_types):
            unit_outputs = []
            for output_type in output_types:
                if output_type == OutputType.SIMPLE and cond_type != CondType.NONE:
                    logger.info("Output type simple is unconditional only; skipping cond=%s", cond_type)
                    report.skipped.append((input_type, cond_type, output_type))
                else:
                    unit_outputs.append(output_type)
            if not unit_outputs:
                continue

            args = [(model, cond_data[cond_type], draw, input_type, cond_type, unit_outputs, settings,
                     _unit_rng(settings, i_input, i_cond, j)) for j, draw in enumerate(draws)]
            desc = f"para={input_type} cond={cond_type}"

            if settings.n_workers > 1 and len(draws) > 1:
                with ThreadPoolExecutor(max_workers=settings.n_workers) as pool:
                    futures = [pool.submit(_run_unit, *a) for a in args]
                    results = [f.result() for f in tqdm(as_completed(futures), total=len(futures), desc=desc)]
            else:
                results = [_run_unit(*a) for a in tqdm(args, desc=desc, disable=len(args) == 1)]

            for result in sorted(results, key=lambda r: r.draw_id):
                if isinstance(result, DrawFailure):
                    report.failures.append(result)
                else:
                    _emit(store, result, input_type, unit_outputs, settings, report)

    if report.failures:
        logger.warning("%d draw(s) failed: %s", report.n_failures, [f.draw_id for f in report.failures])
    return report


def forecast_one(model, data, store, cond_type=CondType.NONE, input_type=InputType.MODE,
                 output_type=OutputType.SIMPLE, settings=None, cond_inputs=None):
    """
    Single (input type, conditional type, output type) combination.
    """
    return forecast_all(model, data, store, cond_types=[cond_type], input_types=[input_type],
                        output_types=[output_type], settings=settings, cond_inputs=cond_inputs)
