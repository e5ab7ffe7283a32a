from dataclasses import dataclass, field, fields, replace as dc_replace
from enum import Enum

from .errors import InvalidEnumValue


class _ParsableEnum(Enum):
    @classmethod
    def parse(cls, value):
        """
        Accepts a member, its value ("mode") or the symbol spelling (":mode").
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.lstrip(":").lower()
            for member in cls:
                if member.value == key:
                    return member
        raise InvalidEnumValue(cls.__name__, value, [m.value for m in cls])

    @classmethod
    def parse_all(cls, values):
        return [cls.parse(v) for v in values]

    def __str__(self):
        return self.value


class CondType(_ParsableEnum):
    NONE = "none"
    SEMI = "semi"
    FULL = "full"


class InputType(_ParsableEnum):
    MODE = "mode"
    MEAN = "mean"
    FULL = "full"
    SUBSET = "subset"

    @property
    def single_draw(self):
        return self in (InputType.MODE, InputType.MEAN)


class OutputType(_ParsableEnum):
    STATES = "states"
    SHOCKS = "shocks"
    SHOCKS_NONSTANDARDIZED = "shocks_nonstandardized"
    FORECAST = "forecast"
    SHOCKDEC = "shockdec"
    DETTREND = "dettrend"
    COUNTER = "counter"
    SIMPLE = "simple"
    SIMPLE_COND = "simple_cond"
    ALL = "all"


class Smoother(_ParsableEnum):
    KALMAN = "kalman"
    DURBIN_KOOPMAN = "durbin_koopman"


@dataclass(frozen=True)
class ForecastSettings:
    """
    Settings for filtering, smoothing and forecasting.

    Passed explicitly to every forecast call instead of living on the model.
    """
    n_presample_periods: int = 0
    forecast_horizons: int = 12
    forecast_smoother: Smoother = Smoother.DURBIN_KOOPMAN
    forecast_pseudoobservables: bool = False
    forecast_draw_shocks: bool = False
    forecast_draw_states: bool = False
    subset_inds: tuple = field(default_factory=tuple)
    seed: int = None
    n_workers: int = 1

    def __post_init__(self):
        object.__setattr__(self, "forecast_smoother", Smoother.parse(self.forecast_smoother))
        object.__setattr__(self, "subset_inds", tuple(int(i) for i in self.subset_inds))

        if self.n_presample_periods < 0:
            raise ValueError(f"n_presample_periods must be >= 0, got {self.n_presample_periods}")
        if self.forecast_horizons < 1:
            raise ValueError(f"forecast_horizons must be >= 1, got {self.forecast_horizons}")
        if self.n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {self.n_workers}")

    def replace(self, **changes):
        return dc_replace(self, **changes)

    @classmethod
    def from_dict(cls, config):
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ValueError(f"Unknown forecast settings: {sorted(unknown)}")
        return cls(**config)
